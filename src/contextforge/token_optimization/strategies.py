"""
Optimization Strategies

Content-reduction passes applied by the optimizer in a fixed order:
whitespace normalization, repetitive-pattern compression, provider-specific
reformatting and budget-driven intelligent trimming.

Each strategy is a pure text transform except trimming, which delegates to a
cheap model through the generation dispatcher and falls back to hard
truncation on any failure.
"""

import logging
import re
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any, Protocol

from ..providers.base import ChatMessage, GenerationConfig, GenerationResult, MessageRole
from ..registry.catalog import DEFAULT_TRIMMING_MODEL
from ..registry.models import ModelDescriptor
from ..registry.registry import ModelRegistry
from .counter import CHARS_PER_TOKEN, estimate_tokens, tokens_for_savings

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    """Anything that can run a chat generation (the dispatcher)."""

    async def generate(self, messages: list[ChatMessage], config: GenerationConfig) -> GenerationResult: ...


@dataclass(frozen=True)
class StrategyOutcome:
    """Record of one strategy that reduced the content."""

    name: str
    description: str
    token_savings: int
    quality_impact: float
    applicability: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StrategyOutcome":
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            token_savings=int(data.get("token_savings", 0)),
            quality_impact=float(data.get("quality_impact", 1.0)),
            applicability=float(data.get("applicability", 1.0)),
        )


@dataclass(frozen=True)
class StrategyContext:
    """Inputs shared by every strategy in one optimization run."""

    descriptor: ModelDescriptor
    max_budget: int


class OptimizationStrategy(ABC):
    """Base class for content-reduction strategies."""

    name: str
    description: str
    quality_impact: float
    applicability: float

    @abstractmethod
    async def apply(self, content: str, context: StrategyContext) -> str:
        """Return the transformed content."""

    def outcome(self, before: str, after: str) -> StrategyOutcome:
        return StrategyOutcome(
            name=self.name,
            description=self.description,
            token_savings=tokens_for_savings(before, after),
            quality_impact=self.quality_impact,
            applicability=self.applicability,
        )


_HORIZONTAL_WS = re.compile(r"[^\S\n]+")
_TRAILING_WS = re.compile(r" +\n")
_BLANK_RUNS = re.compile(r"\n{3,}")


def normalize_whitespace(content: str) -> str:
    """
    Collapse horizontal whitespace, cap blank lines at one and trim.

    Idempotent: normalize_whitespace(normalize_whitespace(x)) == normalize_whitespace(x).
    """
    text = _HORIZONTAL_WS.sub(" ", content)
    text = _TRAILING_WS.sub("\n", text)
    text = _BLANK_RUNS.sub("\n\n", text)
    return text.strip()


class WhitespaceStrategy(OptimizationStrategy):
    name = "whitespace-removal"
    description = "Removed redundant whitespace and formatting"
    quality_impact = 0.95
    applicability = 1.0

    async def apply(self, content: str, context: StrategyContext) -> str:
        return normalize_whitespace(content)


def _phrase_pattern(phrase: str) -> re.Pattern[str]:
    words = phrase.split(" ")
    return re.compile(r"(?<!\S)" + r"\s+".join(re.escape(w) for w in words) + r"(?!\S)")


def _initialism(phrase: str) -> str:
    return "".join(word[0] for word in phrase.split(" ") if word[0].isalnum()).upper()


class PatternCompressionStrategy(OptimizationStrategy):
    """
    Abbreviate repeated phrases.

    Any 3-5 word sequence appearing at least three times and longer than 20
    characters is replaced by its initialism: the first occurrence becomes
    ``phrase (ABBR)`` and every later occurrence becomes ``ABBR``.
    Candidates are processed longest first and re-counted against the
    current text so overlapping phrases are never rewritten twice.
    """

    name = "pattern-compression"
    description = "Compressed repetitive patterns and phrases"
    quality_impact = 0.9
    applicability = 0.7

    min_words = 3
    max_words = 5
    min_occurrences = 3
    min_length = 20

    def find_candidates(self, content: str) -> list[str]:
        words = content.split()
        counts: Counter[str] = Counter()
        for size in range(self.min_words, self.max_words + 1):
            for start in range(len(words) - size + 1):
                counts[" ".join(words[start : start + size])] += 1

        candidates = [
            phrase
            for phrase, count in counts.items()
            if count >= self.min_occurrences and len(phrase) > self.min_length
        ]
        # Longest first; ties keep first-seen order
        return sorted(candidates, key=len, reverse=True)

    async def apply(self, content: str, context: StrategyContext) -> str:
        text = content
        for phrase in self.find_candidates(content):
            abbreviation = _initialism(phrase)
            if len(abbreviation) < 2:
                continue

            pattern = _phrase_pattern(phrase)
            if len(pattern.findall(text)) < self.min_occurrences:
                continue

            seen = 0

            def _replace(match: re.Match[str], abbr: str = abbreviation) -> str:
                nonlocal seen
                seen += 1
                return f"{match.group(0)} ({abbr})" if seen == 1 else abbr

            text = pattern.sub(_replace, text)

        return text


_HEADER_LINE = re.compile(r"^#{1,6}\s+(.+)$", re.MULTILINE)
_BULLET_LINE = re.compile(r"^[-*+]\s+(.+)$", re.MULTILINE)
_DEEP_HEADING = re.compile(r"#{4,6}")
_TRIPLE_EMPHASIS = re.compile(r"\*\*\*(.*?)\*\*\*")


class ReformattingStrategy(OptimizationStrategy):
    """Rewrite markup into the form the target model handles best."""

    name = "model-formatting"
    description = "Applied model-specific formatting optimizations"
    quality_impact = 1.0
    applicability = 0.8

    async def apply(self, content: str, context: StrategyContext) -> str:
        prefs = context.descriptor.format_preferences
        text = content

        if prefs is not None and prefs.use_xml_tags:
            text = _HEADER_LINE.sub(r"<section>\1</section>", text)
            text = _BULLET_LINE.sub(r"<item>\1</item>", text)

        if prefs is not None and prefs.role_based_prompting:
            if "System:" not in text and "User:" not in text:
                text = f"System: {text}"

        if prefs is None or not prefs.has_preference:
            text = _DEEP_HEADING.sub("###", text)
            text = _TRIPLE_EMPHASIS.sub(r"**\1**", text)

        return text


TRIMMING_PROMPT = """Intelligently trim the following content to fit within {max_tokens} tokens while preserving the most important information.

Guidelines:
- Preserve the main ideas and key points
- Remove redundant examples or elaborations
- Keep essential context and instructions
- Maintain readability and coherence
- Target model: {target_model}

Original content:
{content}

Provide the trimmed version that maintains quality while reducing token count:"""

# Upper bound on completion tokens requested from the trimming model
MAX_TRIM_COMPLETION_TOKENS = 4000


def truncate_to_budget(content: str, max_budget: int) -> str:
    """Hard truncation to max_budget * 4 characters."""
    return content[: max_budget * CHARS_PER_TOKEN]


class TrimmingStrategy(OptimizationStrategy):
    """
    Budget-driven trimming through a cheap model.

    Never raises: a missing generator, an unknown trimming model, a provider
    failure or a reply that is not shorter all fall back to hard truncation.
    """

    name = "intelligent-trimming"
    description = "Intelligently trimmed less important content"
    quality_impact = 0.8
    applicability = 0.9

    def __init__(
        self,
        generator: TextGenerator | None = None,
        registry: ModelRegistry | None = None,
        trimming_model: str = DEFAULT_TRIMMING_MODEL,
    ) -> None:
        self.generator = generator
        self.registry = registry
        self.trimming_model = trimming_model

    def is_needed(self, content: str, context: StrategyContext) -> bool:
        return estimate_tokens(content, context.descriptor).total > context.max_budget

    async def apply(self, content: str, context: StrategyContext) -> str:
        fallback = truncate_to_budget(content, context.max_budget)
        if self.generator is None or self.registry is None:
            logger.debug("No generator configured for trimming; truncating", extra={"max_budget": context.max_budget})
            return fallback

        try:
            descriptor = self.registry.describe(self.trimming_model)
            prompt = TRIMMING_PROMPT.format(
                max_tokens=context.max_budget,
                target_model=context.descriptor.model,
                content=content,
            )
            result = await self.generator.generate(
                [ChatMessage(role=MessageRole.USER, content=prompt)],
                GenerationConfig(
                    provider=descriptor.provider,
                    model=descriptor.identifier,
                    max_tokens=min(context.max_budget, MAX_TRIM_COMPLETION_TOKENS),
                    temperature=0.3,
                ),
            )
        except Exception as e:
            logger.warning(
                f"Intelligent trimming failed, falling back to truncation: {e}",
                extra={"trimming_model": self.trimming_model, "error": str(e)},
            )
            return fallback

        trimmed = result.content.strip()
        if not trimmed or len(trimmed) >= len(content):
            logger.info(
                "Trimming model did not shorten content; truncating",
                extra={"trimming_model": self.trimming_model, "original_chars": len(content)},
            )
            return fallback

        return trimmed


def default_strategies(
    generator: TextGenerator | None = None,
    registry: ModelRegistry | None = None,
    trimming_model: str = DEFAULT_TRIMMING_MODEL,
) -> tuple[WhitespaceStrategy, PatternCompressionStrategy, ReformattingStrategy, TrimmingStrategy]:
    """The four strategies in pipeline order."""
    return (
        WhitespaceStrategy(),
        PatternCompressionStrategy(),
        ReformattingStrategy(),
        TrimmingStrategy(generator, registry, trimming_model),
    )
