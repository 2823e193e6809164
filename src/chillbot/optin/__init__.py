"""Opt-in channel behavior: creating, renaming, joining and listing hidden channels."""
