"""Pydantic schemas for notification engine inputs and outputs."""
