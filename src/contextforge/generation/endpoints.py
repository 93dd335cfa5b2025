"""
Custom Endpoint Store

Registry of user-defined OpenAI-compatible endpoints owned by a dispatcher.
Persistence is an explicit collaborator with load/save calls; add and remove
are serialized by a lock.
"""

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from ..errors import ConfigurationError, NotFoundError, StorageError
from ..providers.custom_endpoint import CustomEndpoint

logger = logging.getLogger(__name__)


class EndpointPersistence(ABC):
    """Load/save collaborator for custom endpoints."""

    @abstractmethod
    def load(self) -> list[CustomEndpoint]:
        """Return every persisted endpoint."""

    @abstractmethod
    def save(self, endpoints: list[CustomEndpoint]) -> None:
        """Replace the persisted set with ``endpoints``."""


class InMemoryEndpointPersistence(EndpointPersistence):
    """Keeps endpoints for the lifetime of the process."""

    def __init__(self, endpoints: list[CustomEndpoint] | None = None) -> None:
        self._endpoints = list(endpoints or [])

    def load(self) -> list[CustomEndpoint]:
        return list(self._endpoints)

    def save(self, endpoints: list[CustomEndpoint]) -> None:
        self._endpoints = list(endpoints)


class JsonFileEndpointPersistence(EndpointPersistence):
    """Stores endpoints as a JSON array in a local file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> list[CustomEndpoint]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return [CustomEndpoint.model_validate(item) for item in raw]
        except (OSError, json.JSONDecodeError, PydanticValidationError, TypeError) as e:
            raise ConfigurationError(
                f"Failed to load custom endpoints: {e}",
                details={"path": str(self.path)},
            ) from e

    def save(self, endpoints: list[CustomEndpoint]) -> None:
        payload = json.dumps([endpoint.model_dump() for endpoint in endpoints], indent=2)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(
                f"Failed to save custom endpoints: {e}",
                details={"path": str(self.path)},
            ) from e


class CustomEndpointStore:
    """
    In-memory index of custom endpoints backed by a persistence collaborator.

    Call ``load()`` once after construction to read persisted endpoints;
    ``add`` and ``remove`` save immediately.
    """

    def __init__(self, persistence: EndpointPersistence | None = None) -> None:
        self.persistence = persistence or InMemoryEndpointPersistence()
        self._endpoints: dict[str, CustomEndpoint] = {}
        self._lock = threading.Lock()

    def load(self) -> int:
        """Replace the in-memory set with the persisted one; returns the count loaded."""
        endpoints = self.persistence.load()
        with self._lock:
            self._endpoints = {endpoint.id: endpoint for endpoint in endpoints}
        logger.info(f"Loaded {len(endpoints)} custom endpoint(s)", extra={"endpoint_count": len(endpoints)})
        return len(endpoints)

    def save(self) -> None:
        with self._lock:
            self.persistence.save(list(self._endpoints.values()))

    def add(self, endpoint: CustomEndpoint) -> None:
        """Register or replace an endpoint and persist the set."""
        with self._lock:
            self._endpoints[endpoint.id] = endpoint
            self.persistence.save(list(self._endpoints.values()))
        logger.info(
            f"Registered custom endpoint {endpoint.id}",
            extra={"endpoint": endpoint.id, "base_url": endpoint.base_url},
        )

    def remove(self, endpoint_id: str) -> bool:
        """Remove an endpoint; returns False when it was not registered."""
        with self._lock:
            if self._endpoints.pop(endpoint_id, None) is None:
                return False
            self.persistence.save(list(self._endpoints.values()))
        logger.info(f"Removed custom endpoint {endpoint_id}", extra={"endpoint": endpoint_id})
        return True

    def find(self, endpoint_id: str) -> CustomEndpoint | None:
        return self._endpoints.get(endpoint_id)

    def get(self, endpoint_id: str) -> CustomEndpoint:
        """
        Raises:
            NotFoundError: If the endpoint is not registered
        """
        endpoint = self.find(endpoint_id)
        if endpoint is None:
            raise NotFoundError("Custom endpoint", endpoint_id)
        return endpoint

    def list(self) -> list[CustomEndpoint]:
        return list(self._endpoints.values())

    def __len__(self) -> int:
        return len(self._endpoints)
