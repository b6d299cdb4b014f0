"""API message tag parsing and rendering."""

from apitag_core.tagging.codec import TagCodec

__all__ = ["TagCodec"]
