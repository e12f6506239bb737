"""CodeQL CLI adapters."""
