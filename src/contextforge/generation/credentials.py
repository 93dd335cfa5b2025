"""
Provider Credentials

Immutable per-caller credential snapshot taken when a dispatcher is built.
The dispatcher never re-reads credentials during its lifetime.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from ..config.schemas import ProvidersConfig
from ..providers.factory import normalize_provider


@dataclass(frozen=True)
class ProviderCredential:
    """Secret and transport overrides for one provider."""

    api_key: str
    base_url: str | None = None
    timeout: float | None = None

    def __repr__(self) -> str:
        return f"ProviderCredential(api_key='***', base_url={self.base_url!r}, timeout={self.timeout!r})"


@dataclass(frozen=True)
class ProviderCredentials:
    """Read-only mapping of provider tag -> credential."""

    entries: Mapping[str, ProviderCredential] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        # Freeze a private copy so later changes to the caller's dict are not observed
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def get(self, provider: str) -> ProviderCredential | None:
        return self.entries.get(provider)

    def has(self, provider: str) -> bool:
        return provider in self.entries

    @property
    def providers(self) -> list[str]:
        return sorted(self.entries)

    @classmethod
    def from_api_keys(cls, keys: Mapping[str, str | None]) -> "ProviderCredentials":
        """
        Build a snapshot from a caller's key set (e.g. ``{"openai": "sk-...", "google": "..."}``).

        Empty keys are dropped; provider aliases are canonicalized.

        Raises:
            UnsupportedProviderError: If a key is given for an unknown provider
        """
        return cls(
            {normalize_provider(provider): ProviderCredential(api_key=key) for provider, key in keys.items() if key}
        )

    @classmethod
    def from_config(cls, config: ProvidersConfig) -> "ProviderCredentials":
        """Build a snapshot from the environment-level provider configuration."""
        entries: dict[str, ProviderCredential] = {}
        for provider in ("openai", "anthropic", "gemini"):
            provider_config = getattr(config, provider)
            if provider_config.api_key:
                entries[provider] = ProviderCredential(
                    api_key=provider_config.api_key,
                    base_url=provider_config.base_url,
                    timeout=provider_config.timeout,
                )
        return cls(entries)
