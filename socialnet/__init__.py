"""
Social network API package.

A FastAPI service for user accounts, profiles and posts (with likes and
comments), with token authentication and application-level ownership checks
over a document-shaped store.
"""
