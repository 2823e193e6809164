"""In-memory caches that sit in front of the guild repositories."""
