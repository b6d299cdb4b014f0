"""Cross-layer relationship resolution."""

from apitag_analyzer.resolution.implementations import ImplementationFinder
from apitag_analyzer.resolution.resolver import RelationshipResolver

__all__ = ["ImplementationFinder", "RelationshipResolver"]
