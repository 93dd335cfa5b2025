"""
Token Estimator Module

Approximate token counting under a model's accounting rules.

The estimate is a character-length heuristic (about 4 characters per token
for English text) plus the model's fixed per-message framing overhead. It is
suitable for soft limits and cost projections only; it does not reproduce
any provider's tokenizer.
"""

import math
from dataclasses import asdict, dataclass
from typing import Any

from ..registry.models import ModelDescriptor

CHARS_PER_TOKEN = 4


@dataclass(frozen=True)
class TokenCount:
    """
    Token accounting for one piece of content.

    Invariant: content + overhead == total.
    """

    total: int
    content: int
    metadata: int = 0
    overhead: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenCount":
        return cls(
            total=int(data["total"]),
            content=int(data["content"]),
            metadata=int(data.get("metadata", 0)),
            overhead=int(data.get("overhead", 0)),
        )


def estimate_text_tokens(text: str) -> int:
    """Length-based token estimate for bare text: ceil(len / 4)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_tokens(text: str, descriptor: ModelDescriptor) -> TokenCount:
    """
    Estimate tokens for text sent to a model.

    Args:
        text: Content to measure
        descriptor: Target model

    Returns:
        TokenCount with content = ceil(len(text) / 4) and the model's
        special-token overhead (0 when the model declares none)
    """
    content = estimate_text_tokens(text)
    overhead = descriptor.special_tokens.total if descriptor.special_tokens else 0
    return TokenCount(total=content + overhead, content=content, metadata=0, overhead=overhead)


def tokens_for_savings(before: str, after: str) -> int:
    """Token savings attributed to a text rewrite: ceil(bytes removed / 4), never negative."""
    return max(0, math.ceil((len(before) - len(after)) / CHARS_PER_TOKEN))
