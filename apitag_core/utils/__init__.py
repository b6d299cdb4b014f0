"""Utility modules for apitag."""

from apitag_core.utils.layer import (
    classify,
    get_layer_priority,
    is_controller,
    is_entry_method,
    is_entry_point_method,
    is_service,
    is_service_impl,
)

__all__ = [
    "classify",
    "is_controller",
    "is_service",
    "is_service_impl",
    "is_entry_method",
    "is_entry_point_method",
    "get_layer_priority",
]
