"""HTTP API for apitag."""
