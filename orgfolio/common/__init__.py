"""Shared helpers used across orgfolio packages."""
