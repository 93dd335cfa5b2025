"""
Model Registry

Read-only catalog of known models. Built once at process start from the
default catalog plus optional configuration overrides; never mutated per
request, so concurrent readers need no synchronization.
"""

import json
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path
from types import MappingProxyType
from typing import Any

from ..errors import ConfigurationError, UnsupportedModelError
from .catalog import DEFAULT_MODEL, DEFAULT_MODELS
from .models import ModelDescriptor

logger = logging.getLogger(__name__)


class ModelRegistry:
    """
    Static catalog of model descriptors keyed by identifier.

    Lookups accept either the registry identifier (``openai-gpt4o``) or the
    provider-side model name (``gpt-4o``).
    """

    def __init__(
        self,
        descriptors: Iterable[ModelDescriptor] | None = None,
        default_model: str = DEFAULT_MODEL,
    ) -> None:
        entries: dict[str, ModelDescriptor] = {}
        for descriptor in DEFAULT_MODELS if descriptors is None else descriptors:
            entries[descriptor.identifier] = descriptor

        self._models = MappingProxyType(entries)
        self._by_model_name = MappingProxyType({d.model: d for d in reversed(list(entries.values()))})
        self._default_model = default_model

    def describe(self, model_id: str) -> ModelDescriptor:
        """
        Get the descriptor for a model.

        Args:
            model_id: Registry identifier or provider model name

        Returns:
            Model descriptor

        Raises:
            UnsupportedModelError: If the model is not registered
        """
        descriptor = self.find(model_id)
        if descriptor is None:
            raise UnsupportedModelError(model_id, {"known_models": list(self._models)})
        return descriptor

    def find(self, model_id: str) -> ModelDescriptor | None:
        """Return the descriptor for a model, or None when unknown."""
        if model_id in self._models:
            return self._models[model_id]
        return self._by_model_name.get(model_id)

    def __contains__(self, model_id: object) -> bool:
        return isinstance(model_id, str) and self.find(model_id) is not None

    def __iter__(self) -> Iterator[ModelDescriptor]:
        return iter(self._models.values())

    def __len__(self) -> int:
        return len(self._models)

    def get_available_models(self) -> list[ModelDescriptor]:
        """List every registered descriptor in registration order."""
        return list(self._models.values())

    def list_by_provider(self, provider: str) -> list[ModelDescriptor]:
        """List descriptors belonging to one provider family."""
        return [d for d in self._models.values() if d.provider == provider]

    def default_model(self) -> ModelDescriptor:
        """Return the configured default model, or the first registered one."""
        return self.find(self._default_model) or next(iter(self._models.values()))

    @classmethod
    def from_file(cls, path: str | Path, include_defaults: bool = True) -> "ModelRegistry":
        """
        Build a registry from a JSON file of descriptors.

        The file maps identifiers to descriptor objects. Entries override
        built-in descriptors with the same identifier.

        Raises:
            ConfigurationError: If the file is unreadable or an entry is invalid
        """
        file_path = Path(path)
        try:
            raw: dict[str, Any] = json.loads(file_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Failed to read model catalog: {e}",
                details={"path": str(file_path), "error": str(e)},
            ) from e

        entries: dict[str, ModelDescriptor] = {}
        if include_defaults:
            entries.update({d.identifier: d for d in DEFAULT_MODELS})

        for identifier, data in raw.items():
            try:
                entries[identifier] = ModelDescriptor.from_dict(identifier, data)
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Invalid model descriptor '{identifier}': {e}",
                    details={"path": str(file_path), "model": identifier},
                ) from e

        logger.info(
            f"Loaded {len(raw)} model descriptor(s) from {file_path}",
            extra={"path": str(file_path), "model_count": len(entries)},
        )
        return cls(entries.values())


# Global registry instance
_registry: ModelRegistry | None = None


def get_model_registry() -> ModelRegistry:
    """
    Get the global model registry.

    Loads the catalog file named in configuration on first access.

    Returns:
        ModelRegistry singleton instance
    """
    global _registry

    if _registry is None:
        from ..config import get_config

        catalog_file = get_config().registry.models_file
        _registry = ModelRegistry.from_file(catalog_file) if catalog_file else ModelRegistry()

    return _registry


def reset_model_registry() -> None:
    """Drop the global registry so the next access reloads it."""
    global _registry
    _registry = None
