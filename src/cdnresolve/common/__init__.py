"""Shared helpers used across the resolver stages and the CLI."""
