"""
Tests for Validation Decorators and Tool Schemas

Covers the @validate_input decorator (async and sync tools, structured
INVALID_INPUT responses, metrics) and the tool input schemas.
"""

import pydantic
import pytest
from pydantic import BaseModel, Field

from contextforge.errors import ErrorCode
from contextforge.observability import get_observability
from contextforge.validation import validate_input
from contextforge.validation.tool_schemas import (
    AddCustomEndpointInput,
    BatchGenerateInput,
    CompareModelsInput,
    GenerateInput,
    OptimizeForModelInput,
    messages_payload,
)


class SampleInput(BaseModel):
    """Sample validation schema for testing."""

    model_id: str = Field(..., min_length=1, max_length=100)
    max_tokens: int = Field(..., ge=1, le=1000)
    provider: str | None = Field(default=None)


class TestValidateInputDecorator:
    """Test @validate_input decorator."""

    @pytest.mark.asyncio
    async def test_valid_async_input(self):
        @validate_input(SampleInput)
        async def sample_tool(model_id: str, max_tokens: int, provider: str | None = None):
            return {"model_id": model_id, "max_tokens": max_tokens, "provider": provider}

        result = await sample_tool(model_id="gemini-pro", max_tokens=30, provider="gemini")

        assert result == {"model_id": "gemini-pro", "max_tokens": 30, "provider": "gemini"}

    @pytest.mark.asyncio
    async def test_missing_field(self):
        @validate_input(SampleInput)
        async def sample_tool(model_id: str, max_tokens: int, provider: str | None = None):
            return {"model_id": model_id}

        result = await sample_tool(model_id="gemini-pro")

        assert result["success"] is False
        assert result["error_code"] == ErrorCode.INVALID_INPUT.value
        assert result["category"] == "invalid_input"
        assert result["retryable"] is False
        assert result["details"]["validation_errors"][0]["field"] == "max_tokens"

    @pytest.mark.asyncio
    async def test_constraint_violation(self):
        """Out-of-range values are reported against their field."""

        @validate_input(SampleInput)
        async def sample_tool(model_id: str, max_tokens: int, provider: str | None = None):
            return {"model_id": model_id}

        result = await sample_tool(model_id="gemini-pro", max_tokens=5000)

        errors = result["details"]["validation_errors"]
        assert any(err["field"] == "max_tokens" for err in errors)
        assert all({"field", "message", "type"} <= set(err) for err in errors)

    @pytest.mark.asyncio
    async def test_defaults_are_applied(self):
        @validate_input(SampleInput)
        async def sample_tool(model_id: str, max_tokens: int, provider: str | None = "unset"):
            return provider

        assert await sample_tool(model_id="gemini-pro", max_tokens=1) is None

    @pytest.mark.asyncio
    async def test_multiple_errors_and_function_name(self):
        @validate_input(SampleInput)
        async def estimate_tool(model_id: str, max_tokens: int, provider: str | None = None):
            return {}

        result = await estimate_tool(model_id="", max_tokens=0)

        assert len(result["details"]["validation_errors"]) == 2
        assert result["details"]["function"] == "estimate_tool"

    @pytest.mark.asyncio
    async def test_failures_are_counted(self):
        @validate_input(SampleInput)
        async def counted_tool(model_id: str, max_tokens: int, provider: str | None = None):
            return {}

        await counted_tool(model_id="")

        counters = get_observability().get_metrics()["counters"]
        assert counters["validation.failed{error_count=2,function=counted_tool}"] == 1

    @pytest.mark.asyncio
    async def test_tool_exceptions_propagate(self):
        @validate_input(SampleInput)
        async def failing_tool(model_id: str, max_tokens: int, provider: str | None = None):
            raise RuntimeError("tool failed")

        with pytest.raises(RuntimeError):
            await failing_tool(model_id="gemini-pro", max_tokens=1)

    def test_sync_tool(self):
        @validate_input(SampleInput)
        def sample_tool(model_id: str, max_tokens: int, provider: str | None = None):
            return model_id

        assert sample_tool(model_id="gemini-pro", max_tokens=1) == "gemini-pro"
        assert sample_tool(model_id="", max_tokens=1)["success"] is False

    def test_preserves_metadata(self):
        @validate_input(SampleInput)
        async def documented_tool(model_id: str, max_tokens: int, provider: str | None = None):
            """Estimate something."""

        assert documented_tool.__name__ == "documented_tool"
        assert documented_tool.__doc__ == "Estimate something."

    @pytest.mark.asyncio
    async def test_nested_field_path(self):
        class Inner(BaseModel):
            content: str

        class Outer(BaseModel):
            message: Inner

        @validate_input(Outer)
        async def sample_tool(message: dict):
            return message

        result = await sample_tool(message={"content": 123})

        assert result["details"]["validation_errors"][0]["field"] == "message -> content"


class TestToolSchemas:
    """Tests for tool input schemas."""

    def test_optimize_rejects_blank_content(self):
        with pytest.raises(pydantic.ValidationError):
            OptimizeForModelInput(content="   ", model_id="gemini-pro")

    def test_compare_needs_two_models(self):
        with pytest.raises(pydantic.ValidationError):
            CompareModelsInput(prompt="hi", model_ids=["gemini-pro"])

    def test_batch_ids_must_be_unique(self):
        request = {"id": "r1", "messages": [{"role": "user", "content": "hi"}], "provider": "openai", "model": "m"}

        with pytest.raises(pydantic.ValidationError):
            BatchGenerateInput(requests=[request, request])

    def test_generate_rejects_unknown_role(self):
        with pytest.raises(pydantic.ValidationError):
            GenerateInput(messages=[{"role": "robot", "content": "hi"}], provider="openai", model="m")

    def test_endpoint_url_scheme(self):
        with pytest.raises(pydantic.ValidationError):
            AddCustomEndpointInput(id="x", name="x", base_url="localhost:8000")

    def test_messages_payload_drops_unset_fields(self):
        validated = GenerateInput(messages=[{"role": "user", "content": "hi"}], provider="openai", model="m")

        assert messages_payload(validated.model_dump()["messages"]) == [{"role": "user", "content": "hi"}]
