"""Shared infrastructure: logging, monitoring, errors, persistence and IO models."""
