"""Pydantic models shared across the application."""
