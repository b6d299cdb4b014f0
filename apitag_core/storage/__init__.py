"""SQLite storage for the code model and edit history."""
