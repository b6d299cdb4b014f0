"""Exceptions raised by the apitag code model and sync engine."""


class TagSyncError(Exception):
    """Base class for apitag errors."""


class UnresolvableSeedError(TagSyncError, ValueError):
    """The seed has no containing type/method or its layer cannot be determined."""


class MissingTagError(TagSyncError):
    """The seed carries no tag and none was supplied."""


class CodeModelError(TagSyncError):
    """A code model lookup or edit failed."""


class DocumentationWriteError(CodeModelError):
    """The code model rejected a documentation edit."""


class ResolutionCancelledError(TagSyncError):
    """Relationship resolution was cancelled before completion."""


class SymbolNotFoundError(TagSyncError, LookupError):
    """No symbol with the requested fully qualified name is indexed."""
