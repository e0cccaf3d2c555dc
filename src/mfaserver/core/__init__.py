"""Core types, errors and request-scoped helpers shared by the API layer."""
