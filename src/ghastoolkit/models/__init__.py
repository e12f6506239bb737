"""Domain models for languages, queries, packs and databases."""
