"""Shared helpers for Chill Bot (logging)."""
