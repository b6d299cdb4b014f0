"""Relationship resolution, tag propagation and inspections."""
