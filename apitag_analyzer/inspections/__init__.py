"""Inspections over the code model."""

from apitag_analyzer.inspections.runner import InspectionRunner

__all__ = ["InspectionRunner"]
