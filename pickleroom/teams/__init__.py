"""Team assignment for games."""
