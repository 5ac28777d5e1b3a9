"""Settings, logging and database connection."""
