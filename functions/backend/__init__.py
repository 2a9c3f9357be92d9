"""
Backend package for the content service.

This package provides a FastAPI application that serves admin-managed
reference content (programs, mood types, onboarding questions, social
networks, activity types) from in-memory stores synced with JSON documents
kept in Google Drive or an S3-compatible bucket.
"""
