"""Tag propagation."""

from apitag_analyzer.propagation.propagator import TagPropagator, render_audit

__all__ = ["TagPropagator", "render_audit"]
