"""Import batch jobs: area seeding, radius import, photo refresh and cuisine backfill"""
