"""apitag command line interface."""
