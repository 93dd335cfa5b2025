"""
Default Model Catalog

Built-in model descriptors loaded at start-up. Pricing in USD per 1K tokens.
"""

from .models import FormatPreferences, ModelDescriptor, ModelTier, SpecialTokens

_OPENAI_FORMAT = FormatPreferences(
    use_xml_tags=False,
    prefer_markdown=True,
    supports_json=True,
    role_based_prompting=True,
)

_ANTHROPIC_FORMAT = FormatPreferences(
    use_xml_tags=True,
    prefer_markdown=True,
    supports_json=True,
    role_based_prompting=True,
)

_GEMINI_FORMAT = FormatPreferences(
    use_xml_tags=False,
    prefer_markdown=True,
    supports_json=True,
    role_based_prompting=False,
)

_OPENAI_FRAMING = SpecialTokens(system=3, user=3, assistant=3)


DEFAULT_MODELS: tuple[ModelDescriptor, ...] = (
    # OpenAI
    ModelDescriptor(
        identifier="openai-gpt4",
        provider="openai",
        model="gpt-5-mini-2025-08-07",
        max_tokens=4096,
        input_cost_per_1k=0.003,
        output_cost_per_1k=0.0075,
        context_window=128000,
        special_tokens=_OPENAI_FRAMING,
        format_preferences=_OPENAI_FORMAT,
        tier=ModelTier.STANDARD,
        capabilities=("creative", "problem-solving", "general"),
    ),
    ModelDescriptor(
        identifier="openai-gpt4o",
        provider="openai",
        model="gpt-4o",
        max_tokens=4096,
        input_cost_per_1k=0.005,
        output_cost_per_1k=0.015,
        context_window=128000,
        special_tokens=_OPENAI_FRAMING,
        format_preferences=_OPENAI_FORMAT,
        tier=ModelTier.PREMIUM,
        capabilities=("general", "multimodal"),
    ),
    ModelDescriptor(
        identifier="openai-gpt4o-mini",
        provider="openai",
        model="gpt-4o-mini",
        max_tokens=16384,
        input_cost_per_1k=0.00015,
        output_cost_per_1k=0.0006,
        context_window=128000,
        special_tokens=_OPENAI_FRAMING,
        format_preferences=_OPENAI_FORMAT,
        tier=ModelTier.BUDGET,
        capabilities=("fast", "cost-effective"),
    ),
    # Anthropic
    ModelDescriptor(
        identifier="anthropic-claude3-opus",
        provider="anthropic",
        model="claude-opus-4-20250514",
        max_tokens=4096,
        input_cost_per_1k=0.015,
        output_cost_per_1k=0.075,
        context_window=200000,
        format_preferences=_ANTHROPIC_FORMAT,
        tier=ModelTier.PREMIUM,
        capabilities=("code", "analysis", "reasoning"),
    ),
    ModelDescriptor(
        identifier="anthropic-claude3-sonnet",
        provider="anthropic",
        model="claude-sonnet-4-20250514",
        max_tokens=4096,
        input_cost_per_1k=0.003,
        output_cost_per_1k=0.015,
        context_window=200000,
        format_preferences=_ANTHROPIC_FORMAT,
        tier=ModelTier.STANDARD,
        capabilities=("code", "analysis", "reasoning"),
    ),
    ModelDescriptor(
        identifier="anthropic-claude3-haiku",
        provider="anthropic",
        model="claude-3-5-haiku-latest",
        max_tokens=4096,
        input_cost_per_1k=0.00025,
        output_cost_per_1k=0.00125,
        context_window=200000,
        format_preferences=_ANTHROPIC_FORMAT,
        tier=ModelTier.BUDGET,
        capabilities=("fast", "cost-effective"),
    ),
    # Google Gemini
    ModelDescriptor(
        identifier="gemini-pro",
        provider="gemini",
        model="gemini-pro",
        max_tokens=8192,
        input_cost_per_1k=0.0005,
        output_cost_per_1k=0.0015,
        context_window=30720,
        format_preferences=_GEMINI_FORMAT,
        tier=ModelTier.STANDARD,
        capabilities=("general",),
    ),
    ModelDescriptor(
        identifier="gemini-pro-1.5",
        provider="gemini",
        model="gemini-1.5-pro",
        max_tokens=8192,
        input_cost_per_1k=0.0035,
        output_cost_per_1k=0.0105,
        context_window=1048576,
        format_preferences=_GEMINI_FORMAT,
        tier=ModelTier.STANDARD,
        capabilities=("multimodal", "long-context"),
    ),
)

# Default model used by the intelligent trimming strategy
DEFAULT_TRIMMING_MODEL = "openai-gpt4o-mini"

# Model returned by ModelRegistry.default_model()
DEFAULT_MODEL = "anthropic-claude3-sonnet"
