"""Built-in field transforms."""
