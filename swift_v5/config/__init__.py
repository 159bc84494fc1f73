"""Project pin resolution and user settings."""
