"""Adapters for external tools and services."""
