"""HTTP surface for the import batch jobs"""
