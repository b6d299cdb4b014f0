# apitag Core Package

from apitag_core.container import ServiceContainer, get_container, reset_container

__all__ = [
    "ServiceContainer",
    "get_container",
    "reset_container",
]
