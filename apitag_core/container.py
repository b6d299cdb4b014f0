"""Service wiring for the CLI and the API.

One container owns one database: the store, the code model over it, the sync
service (with its mutation thread) and the inspection runner that shares that
thread. Tests swap pieces with ``override`` or ``register_instance``.
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from apitag_core.code_model.sqlite_model import SQLiteCodeModel
from apitag_core.config import SyncConfig
from apitag_core.storage.sqlite_store import SQLiteStore
from apitag_core.tagging.codec import TagCodec

logger = logging.getLogger(__name__)

_MISSING = object()


class ServiceContainer:
    """Lazily built, cached services for one ``SyncConfig``."""

    def __init__(self, config: SyncConfig | None = None) -> None:
        self.config = config or SyncConfig.from_env()
        self._instances: dict[str, Any] = {}
        self._factories: dict[str, tuple[Callable[[], Any], bool]] = {
            "store": (self._build_store, True),
            "code_model": (self._build_code_model, True),
            "sync_service": (self._build_sync_service, True),
            "inspection_runner": (self._build_inspection_runner, True),
        }

    # ========================
    # Default factories
    # ========================

    def _build_store(self) -> SQLiteStore:
        logger.debug(f"Opening code model database {self.config.db_path}")
        return SQLiteStore(self.config.db_path)

    def _build_code_model(self) -> SQLiteCodeModel:
        return SQLiteCodeModel(self.get_store(), TagCodec(self.config.tag_pattern))

    def _build_sync_service(self):
        # apitag_analyzer imports apitag_core, so it is loaded on first use
        from apitag_analyzer.sync import TagSyncService

        return TagSyncService(self.get_code_model(), self.config)

    def _build_inspection_runner(self):
        from apitag_analyzer.inspections.runner import InspectionRunner

        sync_service = self.get_sync_service()
        return InspectionRunner(
            self.get_code_model(),
            sync_service,
            self.config,
            dispatcher=sync_service.dispatcher,
        )

    # ========================
    # Registration and lookup
    # ========================

    def register_factory(self, name: str, factory: Callable[[], Any], singleton: bool = True) -> None:
        """Add or replace the factory for ``name``; a cached instance is dropped."""
        self._factories[name] = (factory, singleton)
        self._instances.pop(name, None)

    def register_instance(self, name: str, instance: Any) -> None:
        self._instances[name] = instance

    def get(self, name: str, default: Any = _MISSING) -> Any:
        """Return the service ``name``, building it on first use.

        Raises:
            KeyError: Unknown service and no ``default`` given
        """
        if name in self._instances:
            return self._instances[name]

        entry = self._factories.get(name)
        if entry is None:
            if default is _MISSING:
                raise KeyError(f"Service not found: {name}")
            return default

        factory, singleton = entry
        instance = factory()
        if singleton:
            self._instances[name] = instance
        return instance

    def get_store(self) -> SQLiteStore:
        return self.get("store")

    def get_code_model(self) -> SQLiteCodeModel:
        return self.get("code_model")

    def get_sync_service(self):
        return self.get("sync_service")

    def get_inspection_runner(self):
        return self.get("inspection_runner")

    @contextmanager
    def override(self, name: str, instance: Any) -> Iterator[Any]:
        """Serve ``instance`` as ``name`` inside the block."""
        previous = self._instances.get(name, _MISSING)
        self._instances[name] = instance
        try:
            yield instance
        finally:
            if previous is _MISSING:
                self._instances.pop(name, None)
            else:
                self._instances[name] = previous

    # ========================
    # Lifecycle
    # ========================

    def clear(self) -> None:
        """Stop the mutation thread, close the store and forget every instance."""
        sync_service = self._instances.get("sync_service")
        if sync_service is not None and hasattr(sync_service, "close"):
            sync_service.close()
        store = self._instances.get("store")
        if isinstance(store, SQLiteStore):
            store.close()
        self._instances.clear()

    reset = clear


_global_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Process-wide container, configured from the environment on first use."""
    global _global_container
    if _global_container is None:
        _global_container = ServiceContainer()
    return _global_container


def reset_container() -> None:
    global _global_container
    if _global_container is not None:
        _global_container.clear()
    _global_container = None
