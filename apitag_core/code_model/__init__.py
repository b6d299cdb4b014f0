"""Code model abstraction and its SQLite-backed provider."""

from apitag_core.code_model.base import CodeModel, ReadWriteLock
from apitag_core.code_model.sqlite_model import SQLiteCodeModel

__all__ = ["CodeModel", "ReadWriteLock", "SQLiteCodeModel"]
