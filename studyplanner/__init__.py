"""
StudyPlanner - personal study schedules with file attachments.

This package contains the complete application:
- core: Framework-agnostic schedule and resource lifecycle logic
- infrastructure: Snowflake and R2 integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
