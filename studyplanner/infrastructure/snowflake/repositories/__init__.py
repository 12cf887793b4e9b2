"""
Repository pattern implementations for Snowflake.

Repositories translate between domain models and database representations.
"""

from .schedules import ScheduleRepository, SnowflakeConfig

__all__ = ["ScheduleRepository", "SnowflakeConfig"]
