"""
Snowflake persistence for schedule documents.

Includes a mock connection with in-memory storage for local development.
"""
