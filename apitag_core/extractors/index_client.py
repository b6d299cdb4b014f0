"""HTTP client for the project indexer service."""

from __future__ import annotations

import httpx
from typing import Any


class IndexerClient:
    """Client for the project indexer.

    The indexer parses a source tree and returns a snapshot document (types,
    members, method bodies as expression trees) that ``SnapshotExtractor``
    loads into the code model.
    """

    def __init__(
        self,
        service_url: str = "http://localhost:8766",
        timeout: float = 60.0,
        snapshot_timeout: float = 600.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.service_url = service_url.rstrip("/")
        self.timeout = timeout
        self.snapshot_timeout = snapshot_timeout
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def fetch_snapshot(
        self,
        project_root: str,
        packages: list[str] | None = None,
    ) -> dict[str, Any]:
        """Index a project and return its snapshot document.

        Args:
            project_root: Absolute path to the project source tree.
            packages: Optional package filter (e.g. ["com.example"]).

        Returns:
            Snapshot dict with ``types`` and optional ``references``.

        Raises:
            httpx.HTTPError: The request failed or the indexer answered 4xx/5xx
            ValueError: The answer is not a snapshot object
        """
        payload: dict[str, Any] = {
            "projectRoot": project_root,
            "includeBodies": True,
            "includeSource": True,
        }
        if packages:
            payload["packages"] = packages

        resp = self._client.post(
            f"{self.service_url}/snapshot",
            json=payload,
            timeout=self.snapshot_timeout,
        )
        resp.raise_for_status()
        document = resp.json()
        if not isinstance(document, dict):
            raise ValueError(f"Indexer returned {type(document).__name__}, expected a snapshot object")
        return document

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> IndexerClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
