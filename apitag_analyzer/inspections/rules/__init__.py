"""Inspection rules package."""

from apitag_analyzer.inspections.rules.base import InspectionContext, InspectionRule
from apitag_analyzer.inspections.rules.missing_tag import MissingTagRule
from apitag_analyzer.inspections.rules.service_link import ServiceLinkRule

__all__ = ["InspectionContext", "InspectionRule", "MissingTagRule", "ServiceLinkRule"]
