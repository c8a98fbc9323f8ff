"""Server configuration and database wiring."""
