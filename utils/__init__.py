"""Shared helpers for the restaurant import pipeline"""
