"""Shared helpers for MicroTasker."""
