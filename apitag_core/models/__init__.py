"""Data types shared by the code model and the sync engine."""
