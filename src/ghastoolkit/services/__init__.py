"""Service layer orchestrating adapters."""
