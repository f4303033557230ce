"""
Shared infrastructure for the resource admin backend: configuration,
structured logging, database sessions and the HTTP exception hierarchy.
"""
