"""Command-line interface for the MFA server."""
