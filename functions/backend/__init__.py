"""
Backend package for the Launchpad API.

This package provides a FastAPI application over the same project and
completion services the Cloud Functions expose, with document store
implementations for Firestore, Postgres and in-memory use.
"""
