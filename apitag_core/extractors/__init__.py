"""Project index snapshot loading."""
