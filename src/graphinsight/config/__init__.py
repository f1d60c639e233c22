"""Configuration models and table schema definitions."""
