"""API routes for apitag."""
