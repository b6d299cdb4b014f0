"""Abstract code model consumed by the resolver and the propagator.

A code model answers structural questions about an indexed codebase (types,
methods, implements lists, the reference index, method bodies) and applies
documentation/annotation edits. Reads happen inside ``read_scope()``; edits
are only legal inside ``write_transaction(label)``, which groups them into one
undoable history entry.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, TypeVar

from apitag_core.exceptions import CodeModelError
from apitag_core.models.expressions import Expression, MethodCall, VariableRef
from apitag_core.models.types import Reference, Symbol

T = TypeVar("T")


def annotation_simple_name(annotation: str) -> str:
    """``org.acme.ApiMsgId(value="X")`` -> ``ApiMsgId``."""
    name = annotation.split("(", 1)[0].strip()
    return name.rsplit(".", 1)[-1]


class ReadWriteLock:
    """Many concurrent readers or one writer.

    Re-entrant per thread: a reader may nest read scopes and the writer may
    open read scopes. A reader cannot upgrade to writer.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers: dict[int, int] = {}
        self._writer: Optional[int] = None
        self._writer_depth = 0

    def acquire_read(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me or me in self._readers:
                self._readers[me] = self._readers.get(me, 0) + 1
                return
            while self._writer is not None:
                self._cond.wait()
            self._readers[me] = 1

    def release_read(self) -> None:
        me = threading.get_ident()
        with self._cond:
            remaining = self._readers.get(me, 0) - 1
            if remaining > 0:
                self._readers[me] = remaining
            else:
                self._readers.pop(me, None)
            self._cond.notify_all()

    def acquire_write(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._writer_depth += 1
                return
            if me in self._readers:
                raise CodeModelError("Cannot open a write transaction inside a read scope")
            while self._writer is not None or self._readers:
                self._cond.wait()
            self._writer = me
            self._writer_depth = 1

    def release_write(self) -> None:
        with self._cond:
            self._writer_depth -= 1
            if self._writer_depth <= 0:
                self._writer = None
                self._writer_depth = 0
            self._cond.notify_all()

    def held_for_write(self) -> bool:
        return self._writer == threading.get_ident()


class CodeModel(ABC):
    """Read/write access to symbols of an indexed codebase."""

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._tx_state = threading.local()

    # ========================
    # Scopes
    # ========================

    @contextmanager
    def read_scope(self) -> Iterator[CodeModel]:
        """Hold the shared lock for a consistent multi-step read."""
        self._lock.acquire_read()
        try:
            yield self
        finally:
            self._lock.release_read()

    @contextmanager
    def write_transaction(self, label: str) -> Iterator[CodeModel]:
        """Hold the exclusive lock and group every edit under ``label``.

        A nested call on the same thread joins the outer transaction.
        """
        if self.in_write_transaction:
            yield self
            return

        self._lock.acquire_write()
        try:
            with self._transaction(label):
                self._tx_state.active = True
                try:
                    yield self
                finally:
                    self._tx_state.active = False
        finally:
            self._lock.release_write()

    @property
    def in_write_transaction(self) -> bool:
        return bool(getattr(self._tx_state, "active", False))

    def run_in_read_scope(self, fn: Callable[[], T]) -> T:
        with self.read_scope():
            return fn()

    def run_in_write_transaction(self, label: str, fn: Callable[[], T]) -> T:
        with self.write_transaction(label):
            return fn()

    def _require_write_transaction(self, operation: str) -> None:
        if not self.in_write_transaction:
            raise CodeModelError(f"{operation} requires an open write transaction")

    @abstractmethod
    def _transaction(self, label: str):
        """Context manager that commits the block's edits as one history entry."""

    # ========================
    # Lookup
    # ========================

    @abstractmethod
    def find_type(self, name_or_pattern: str) -> list[Symbol]:
        """Find types by fqn, simple name, or a ``*``/``?`` wildcard pattern."""

    @abstractmethod
    def get_symbol(self, fqn: str) -> Optional[Symbol]:
        """Resolve a fresh handle for ``fqn``; None if it is not in the model."""

    @abstractmethod
    def get_methods(self, type_symbol: Symbol) -> list[Symbol]:
        """Methods declared on a type, in declaration order."""

    @abstractmethod
    def get_fields(self, type_symbol: Symbol) -> list[Symbol]:
        """Fields declared on a type, in declaration order."""

    @abstractmethod
    def get_interfaces(self, type_symbol: Symbol) -> list[Symbol]:
        """Types named in the declared implements list that the model knows."""

    @abstractmethod
    def find_references(self, symbol: Symbol) -> list[Reference]:
        """Reference-index hits pointing at ``symbol``."""

    @abstractmethod
    def resolve_call(self, call: MethodCall) -> Optional[Symbol]:
        """Target method of a call site, None when unresolved."""

    @abstractmethod
    def resolve_variable(self, ref: VariableRef) -> Optional[Symbol]:
        """Declared type of a field/parameter/local reference, None when unknown."""

    @abstractmethod
    def get_body(self, method: Symbol) -> Optional[Expression]:
        """Expression tree of a method body, None for abstract/bodiless methods."""

    @abstractmethod
    def get_source_text(self, method: Symbol) -> str:
        """Source text of a method; may be a reconstruction when unavailable."""

    # ========================
    # Documentation and annotations
    # ========================

    @abstractmethod
    def get_documentation(self, symbol: Symbol) -> Optional[str]:
        """Current documentation block of a symbol."""

    @abstractmethod
    def set_documentation(self, symbol: Symbol, text: str) -> None:
        """Replace the documentation block wholesale."""

    @abstractmethod
    def insert_documentation(self, symbol: Symbol, text: str) -> None:
        """Attach a documentation block to a symbol that has none."""

    @abstractmethod
    def get_annotations(self, symbol: Symbol) -> tuple[str, ...]:
        """Annotation names (optionally with arguments) on a symbol."""

    @abstractmethod
    def add_annotation(
        self, symbol: Symbol, name: str, attributes: Optional[dict[str, Any]] = None
    ) -> None:
        """Add an annotation with optional attribute values."""

    # ========================
    # History
    # ========================

    @abstractmethod
    def undo_last(self) -> Optional[dict[str, Any]]:
        """Revert the most recent write transaction. None if nothing to undo."""

    @abstractmethod
    def history(self, limit: int = 20) -> list[dict[str, Any]]:
        """Most recent write transactions first."""
