"""Core configuration, environment and error types."""
