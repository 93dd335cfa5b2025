"""
Model Descriptors

Immutable metadata records describing one model variant: pricing, limits,
special-token framing overhead and formatting preferences.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class ModelTier(str, Enum):
    """Quality/price tier of a model within its family."""

    BUDGET = "budget"
    STANDARD = "standard"
    PREMIUM = "premium"


@dataclass(frozen=True)
class SpecialTokens:
    """Per-role framing cost in tokens."""

    system: int = 0
    user: int = 0
    assistant: int = 0

    @property
    def total(self) -> int:
        return self.system + self.user + self.assistant


@dataclass(frozen=True)
class FormatPreferences:
    """Prompt formatting hints for a model."""

    use_xml_tags: bool = False
    prefer_markdown: bool = False
    supports_json: bool = False
    role_based_prompting: bool = False

    @property
    def has_preference(self) -> bool:
        """True when the model asks for structured tags or explicit roles."""
        return self.use_xml_tags or self.role_based_prompting


@dataclass(frozen=True)
class ModelDescriptor:
    """Static description of one model variant."""

    identifier: str
    provider: str
    model: str
    max_tokens: int
    input_cost_per_1k: float  # USD per 1K tokens
    output_cost_per_1k: float  # USD per 1K tokens
    context_window: int
    special_tokens: SpecialTokens | None = None
    format_preferences: FormatPreferences | None = None
    tier: ModelTier = ModelTier.STANDARD
    capabilities: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.context_window < self.max_tokens:
            raise ValueError(
                f"Model {self.identifier}: context_window ({self.context_window}) "
                f"must be >= max_tokens ({self.max_tokens})"
            )
        if self.max_tokens <= 0:
            raise ValueError(f"Model {self.identifier}: max_tokens must be positive")
        if self.input_cost_per_1k < 0 or self.output_cost_per_1k < 0:
            raise ValueError(f"Model {self.identifier}: costs must be non-negative")

    @property
    def is_top_tier(self) -> bool:
        return self.tier == ModelTier.PREMIUM

    @property
    def is_fast(self) -> bool:
        return "fast" in self.capabilities

    def calculate_cost(self, input_tokens: int, output_tokens: int = 0) -> float:
        """
        Calculate total cost for token usage.

        Args:
            input_tokens: Number of input tokens
            output_tokens: Number of output tokens

        Returns:
            Total cost in USD
        """
        input_cost = (input_tokens / 1000) * self.input_cost_per_1k
        output_cost = (output_tokens / 1000) * self.output_cost_per_1k
        return input_cost + output_cost

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        data = asdict(self)
        data["tier"] = self.tier.value
        data["capabilities"] = list(self.capabilities)
        return data

    @classmethod
    def from_dict(cls, identifier: str, data: dict[str, Any]) -> "ModelDescriptor":
        """
        Build a descriptor from configuration data.

        Accepts both snake_case keys and the camelCase keys used by exported
        model catalogs (``inputCostPer1k``, ``contextWindow``...).
        """

        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in data:
                    return data[key]
            return default

        special = pick("special_tokens", "specialTokens")
        prefs = pick("format_preferences", "formatPreferences")

        return cls(
            identifier=identifier,
            provider=str(pick("provider")),
            model=str(pick("model", default=identifier)),
            max_tokens=int(pick("max_tokens", "maxTokens")),
            input_cost_per_1k=float(pick("input_cost_per_1k", "inputCostPer1k")),
            output_cost_per_1k=float(pick("output_cost_per_1k", "outputCostPer1k")),
            context_window=int(pick("context_window", "contextWindow")),
            special_tokens=SpecialTokens(**special) if special else None,
            format_preferences=(
                FormatPreferences(
                    use_xml_tags=bool(prefs.get("use_xml_tags", prefs.get("useXmlTags", False))),
                    prefer_markdown=bool(prefs.get("prefer_markdown", prefs.get("preferMarkdown", False))),
                    supports_json=bool(prefs.get("supports_json", prefs.get("supportsJson", False))),
                    role_based_prompting=bool(
                        prefs.get("role_based_prompting", prefs.get("roleBasedPrompting", False))
                    ),
                )
                if prefs
                else None
            ),
            tier=ModelTier(pick("tier", default=ModelTier.STANDARD.value)),
            capabilities=tuple(pick("capabilities", default=())),
        )
