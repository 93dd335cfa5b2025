"""
Tool Input Validation Schemas

Pydantic models for validating every MCP tool input.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

MAX_CONTENT_LENGTH = 2_000_000


def _not_blank(value: str, field: str) -> str:
    if not value.strip():
        raise ValueError(f"{field} cannot be empty or only whitespace")
    return value


class CheckStatusInput(BaseModel):
    """Input validation for check_status tool."""

    include_details: bool = Field(default=False, description="Include metrics and configuration details")


class ListModelsInput(BaseModel):
    """Input validation for list_models tool."""

    provider: str | None = Field(default=None, description="Only list models served by this provider")


class OptimizeForModelInput(BaseModel):
    """Input validation for optimize_for_model tool."""

    content: str = Field(
        ...,
        min_length=1,
        max_length=MAX_CONTENT_LENGTH,
        description="Content to optimize",
    )
    model_id: str = Field(..., min_length=1, description="Target registry model id")
    max_token_budget: int | None = Field(default=None, ge=1, description="Token budget override")
    prioritize_quality: bool = Field(default=False)
    aggressive_optimization: bool = Field(default=False)
    preserve_formatting: bool = Field(default=False)
    subject_id: str | None = Field(
        default=None,
        min_length=1,
        max_length=255,
        description="Store the result under this subject id when given",
    )

    @field_validator("content")
    @classmethod
    def validate_content_not_empty(cls, v: str) -> str:
        return _not_blank(v, "Content")


class GetCostEstimatesInput(BaseModel):
    """Input validation for get_cost_estimates tool."""

    content: str = Field(..., min_length=1, max_length=MAX_CONTENT_LENGTH)
    model_ids: list[str] = Field(..., min_length=1, max_length=50, description="Registry model ids")


class GetModelRecommendationsInput(BaseModel):
    """Input validation for get_model_recommendations tool."""

    content: str = Field(..., min_length=1, max_length=MAX_CONTENT_LENGTH)
    max_cost: float | None = Field(default=None, ge=0.0, description="Hard cost ceiling in USD")
    prioritize_quality: bool = Field(default=False)
    requires_large_context: bool = Field(default=False)


class MessageInput(BaseModel):
    """One chat message in tool input."""

    role: Literal["system", "user", "assistant", "function"]
    content: str = Field(default="", max_length=MAX_CONTENT_LENGTH)
    name: str | None = None


class GenerateInput(BaseModel):
    """Input validation for generate tool."""

    messages: list[MessageInput] = Field(..., min_length=1, description="Conversation messages")
    provider: str = Field(..., min_length=1, description="Provider tag")
    model: str = Field(..., min_length=1, description="Model id")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, ge=1, le=200_000)
    top_p: float = Field(default=1.0, ge=0.0, le=1.0)
    frequency_penalty: float = Field(default=0.0, ge=-2.0, le=2.0)
    presence_penalty: float = Field(default=0.0, ge=-2.0, le=2.0)
    response_format: Literal["text", "json"] | None = None
    timeout: float | None = Field(default=None, gt=0.0, le=600.0)
    endpoint_id: str | None = None


class BatchRequestInput(BaseModel):
    """One request in a batch_generate call."""

    id: str = Field(..., min_length=1, max_length=255)
    messages: list[MessageInput] = Field(..., min_length=1)
    provider: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, ge=1, le=200_000)
    timeout: float | None = Field(default=None, gt=0.0, le=600.0)
    endpoint_id: str | None = None


class BatchGenerateInput(BaseModel):
    """Input validation for batch_generate tool."""

    requests: list[BatchRequestInput] = Field(..., min_length=1, max_length=100)

    @field_validator("requests")
    @classmethod
    def validate_unique_ids(cls, v: list[BatchRequestInput]) -> list[BatchRequestInput]:
        ids = [request.id for request in v]
        if len(ids) != len(set(ids)):
            raise ValueError("Request ids must be unique")
        return v


class CompareModelsInput(BaseModel):
    """Input validation for compare_models tool."""

    prompt: str = Field(..., min_length=1, max_length=MAX_CONTENT_LENGTH)
    model_ids: list[str] = Field(..., min_length=2, max_length=10, description="Models to compare")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, ge=1, le=200_000)

    @field_validator("prompt")
    @classmethod
    def validate_prompt_not_empty(cls, v: str) -> str:
        return _not_blank(v, "Prompt")


class GetOptimizationInput(BaseModel):
    """Input validation for get_optimization tool."""

    subject_id: str = Field(..., min_length=1, max_length=255)
    model_id: str = Field(..., min_length=1)


class AddCustomEndpointInput(BaseModel):
    """Input validation for add_custom_endpoint tool."""

    id: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    base_url: str = Field(..., min_length=1)
    api_key: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    model_mapping: dict[str, str] = Field(default_factory=dict)
    supported_features: list[str] = Field(default_factory=list)
    timeout: float | None = Field(default=None, gt=0.0, le=600.0)
    test_connection: bool = Field(default=False, description="Probe the endpoint before saving")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v


class RemoveCustomEndpointInput(BaseModel):
    """Input validation for remove_custom_endpoint tool."""

    endpoint_id: str = Field(..., min_length=1)


def messages_payload(messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Drop unset optional fields from validated message dicts."""
    return [{k: v for k, v in message.items() if v is not None} for message in messages]
