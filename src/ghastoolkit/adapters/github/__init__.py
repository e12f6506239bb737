"""GitHub REST adapters."""
