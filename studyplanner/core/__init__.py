"""
Core business logic for study schedules.

This module is framework-agnostic - it doesn't import FastAPI, Snowflake,
or boto3. Storage and persistence come in through the protocols in
resources.protocols, so the lifecycle can be tested in isolation.
"""
