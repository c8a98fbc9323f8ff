"""Maintenance scripts run from the command line."""
