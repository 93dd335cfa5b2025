"""
ContextForge — Server

FastMCP server using stdio transport (Model Context Protocol).

- Lifespan hook builds the engine from configuration and closes it on shutdown
- Every tool validates its input with a Pydantic schema
- Failures are returned as structured error payloads that separate
  configuration problems from transient ones
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP

from . import __version__
from .config import load_config
from .engine import ContextForgeEngine
from .errors import ConfigurationError, ErrorCode, error_response_from_exception, make_error_response
from .generation import BatchRequest
from .observability import get_observability, initialize_observability, setup_logging
from .providers import ChatMessage, CustomEndpoint, GenerationConfig
from .token_optimization import OptimizationOptions, RecommendationRequirements
from .validation import validate_input
from .validation.tool_schemas import (
    AddCustomEndpointInput,
    BatchGenerateInput,
    CheckStatusInput,
    CompareModelsInput,
    GenerateInput,
    GetCostEstimatesInput,
    GetModelRecommendationsInput,
    GetOptimizationInput,
    ListModelsInput,
    OptimizeForModelInput,
    RemoveCustomEndpointInput,
    messages_payload,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def server_lifespan(server: Any) -> Any:
    """Server lifespan manager (startup/shutdown)."""
    await initialize_server()
    try:
        yield
    finally:
        await cleanup_server()


mcp = FastMCP("ContextForge - Generation & Optimization Engine", lifespan=server_lifespan)

# Global state
_engine: ContextForgeEngine | None = None


def get_engine() -> ContextForgeEngine:
    if _engine is None:
        raise ConfigurationError("ContextForge engine is not initialized")
    return _engine


def _tool_error(tool: str, error: Exception) -> dict[str, Any]:
    response = error_response_from_exception(error)
    logger.warning(
        f"Tool {tool} failed: {error}",
        extra={"tool": tool, "error_code": response["error_code"], "category": response["category"]},
    )
    get_observability().increment("tools.failed", tags={"tool": tool, "error_code": response["error_code"]})
    return response


@mcp.tool()
@validate_input(CheckStatusInput)
async def check_status(include_details: bool = False) -> dict[str, Any]:
    """
    Check system health and status.

    Args:
        include_details: Include metrics and configured providers

    Returns:
        System status information
    """
    obs = get_observability()
    obs.increment("tools.check_status")

    if _engine is None:
        return {"status": "initializing", "service": "contextforge", "version": __version__}

    status: dict[str, Any] = {
        "status": "healthy",
        "service": "contextforge",
        "version": __version__,
        "providers": _engine.dispatcher.credentials.providers,
        "models": len(_engine.registry),
        "custom_endpoints": len(_engine.get_custom_endpoints()),
    }

    if include_details:
        status["metrics"] = obs.get_metrics()
        status["observability"] = {
            "metrics_enabled": obs.enable_metrics,
            "tracing_enabled": obs.enable_tracing,
        }

    return status


@mcp.tool()
@validate_input(ListModelsInput)
async def list_models(provider: str | None = None) -> dict[str, Any]:
    """
    List registry models.

    Args:
        provider: Only list models served by this provider

    Returns:
        Model descriptors
    """
    models = get_engine().list_models(provider)
    return {"success": True, "models": [m.to_dict() for m in models], "count": len(models)}


@mcp.tool()
@validate_input(OptimizeForModelInput)
async def optimize_for_model(
    content: str,
    model_id: str,
    max_token_budget: int | None = None,
    prioritize_quality: bool = False,
    aggressive_optimization: bool = False,
    preserve_formatting: bool = False,
    subject_id: str | None = None,
) -> dict[str, Any]:
    """
    Reduce content to fit a model's token budget.

    Runs whitespace normalization, pattern compression, model-specific
    reformatting and (when still over budget) intelligent trimming.

    Args:
        content: Content to optimize
        model_id: Target registry model id
        max_token_budget: Budget override (defaults to 80% of the context window)
        prioritize_quality: Prefer quality over savings
        aggressive_optimization: Run every strategy even when under budget
        preserve_formatting: Skip whitespace normalization
        subject_id: Store the result under this id

    Returns:
        Optimization result with token and cost savings
    """
    get_observability().increment("tools.optimize_for_model")
    options = OptimizationOptions(
        max_token_budget=max_token_budget,
        prioritize_quality=prioritize_quality,
        aggressive_optimization=aggressive_optimization,
        preserve_formatting=preserve_formatting,
    )
    try:
        result = await get_engine().optimize_for_model(content, model_id, options, subject_id=subject_id)
    except Exception as e:
        return _tool_error("optimize_for_model", e)

    return {
        "success": True,
        "reduction_percentage": round(result.reduction_percentage, 2),
        **result.to_dict(include_original=False),
    }


@mcp.tool()
@validate_input(GetCostEstimatesInput)
async def get_cost_estimates(content: str, model_ids: list[str]) -> dict[str, Any]:
    """
    Estimate tokens and input/output cost of content for each model.

    Unknown model ids are omitted from the result.
    """
    get_observability().increment("tools.get_cost_estimates")
    estimates = get_engine().get_cost_estimates(content, model_ids)
    return {
        "success": True,
        "estimates": estimates,
        "skipped": [m for m in model_ids if m not in estimates],
    }


@mcp.tool()
@validate_input(GetModelRecommendationsInput)
async def get_model_recommendations(
    content: str,
    max_cost: float | None = None,
    prioritize_quality: bool = False,
    requires_large_context: bool = False,
) -> dict[str, Any]:
    """
    Rank registry models for content without calling any provider.

    Args:
        content: Content to be sent
        max_cost: Hard ceiling on projected cost
        prioritize_quality: Favor top-tier models
        requires_large_context: Reward context headroom

    Returns:
        Recommendations sorted by score
    """
    get_observability().increment("tools.get_model_recommendations")
    requirements = RecommendationRequirements(
        max_cost=max_cost,
        prioritize_quality=prioritize_quality,
        requires_large_context=requires_large_context,
    )
    recommendations = get_engine().get_model_recommendations(content, requirements)
    return {"success": True, "recommendations": [r.to_dict() for r in recommendations]}


@mcp.tool()
@validate_input(GenerateInput)
async def generate(
    messages: list[dict[str, Any]],
    provider: str,
    model: str,
    temperature: float = 0.7,
    max_tokens: int = 1000,
    top_p: float = 1.0,
    frequency_penalty: float = 0.0,
    presence_penalty: float = 0.0,
    response_format: str | None = None,
    timeout: float | None = None,
    endpoint_id: str | None = None,
) -> dict[str, Any]:
    """
    Run one chat generation through the configured provider.

    Returns:
        Generation result with usage, cost and duration
    """
    get_observability().increment("tools.generate", tags={"provider": provider})
    try:
        config = GenerationConfig(
            provider=provider,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            top_p=top_p,
            frequency_penalty=frequency_penalty,
            presence_penalty=presence_penalty,
            response_format=response_format,
            timeout=timeout,
            endpoint_id=endpoint_id,
        )
        chat = [ChatMessage(**m) for m in messages_payload(messages)]
        result = await get_engine().generate(chat, config)
    except Exception as e:
        return _tool_error("generate", e)

    return {"success": True, **result.model_dump(mode="json")}


@mcp.tool()
@validate_input(BatchGenerateInput)
async def batch_generate(requests: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Run several generation requests concurrently.

    Each request settles independently; results keep input order.
    """
    get_observability().increment("tools.batch_generate")
    try:
        batch = [
            BatchRequest(
                id=request["id"],
                messages=[ChatMessage(**m) for m in messages_payload(request["messages"])],
                config=GenerationConfig(
                    provider=request["provider"],
                    model=request["model"],
                    temperature=request["temperature"],
                    max_tokens=request["max_tokens"],
                    timeout=request["timeout"],
                    endpoint_id=request["endpoint_id"],
                ),
            )
            for request in requests
        ]
        results = await get_engine().batch_generate(batch)
    except Exception as e:
        return _tool_error("batch_generate", e)

    return {
        "success": True,
        "results": [r.model_dump(mode="json", exclude_none=True) for r in results],
        "failed": sum(1 for r in results if not r.ok),
    }


@mcp.tool()
@validate_input(CompareModelsInput)
async def compare_models(
    prompt: str,
    model_ids: list[str],
    temperature: float = 0.7,
    max_tokens: int = 1000,
) -> dict[str, Any]:
    """
    Run one prompt against several models and rank the answers.

    Score favors fuller answers (up to 1000 chars), lower cost and lower
    latency. Failed models score 0 and rank last.
    """
    get_observability().increment("tools.compare_models")
    try:
        comparison = await get_engine().compare_models(
            prompt,
            model_ids,
            {"temperature": temperature, "max_tokens": max_tokens},
        )
    except Exception as e:
        return _tool_error("compare_models", e)

    return {"success": True, **comparison.model_dump(mode="json")}


@mcp.tool()
@validate_input(GetOptimizationInput)
async def get_optimization(subject_id: str, model_id: str) -> dict[str, Any]:
    """Fetch a stored optimization result for (subject, model)."""
    try:
        result = await get_engine().get_optimization(subject_id, model_id)
    except Exception as e:
        return _tool_error("get_optimization", e)

    if result is None:
        return make_error_response(
            ErrorCode.NOT_FOUND,
            f"No optimization stored for {subject_id} / {model_id}",
            {"subject_id": subject_id, "model_id": model_id},
        )
    return {"success": True, "subject_id": subject_id, **result.to_dict(include_original=False)}


@mcp.tool()
@validate_input(AddCustomEndpointInput)
async def add_custom_endpoint(
    id: str,
    name: str,
    base_url: str,
    api_key: str | None = None,
    headers: dict[str, str] | None = None,
    model_mapping: dict[str, str] | None = None,
    supported_features: list[str] | None = None,
    timeout: float | None = None,
    test_connection: bool = False,
) -> dict[str, Any]:
    """
    Register an OpenAI-compatible endpoint under an id.

    With test_connection, the endpoint is saved only if GET <base_url>/models answers 2xx.
    """
    try:
        endpoint = CustomEndpoint(
            id=id,
            name=name,
            base_url=base_url,
            api_key=api_key,
            headers=headers or {},
            model_mapping=model_mapping or {},
            supported_features=supported_features or [],
            timeout=timeout,
        )
        added = await get_engine().add_custom_endpoint(endpoint, test_connection=test_connection)
    except Exception as e:
        return _tool_error("add_custom_endpoint", e)

    if not added:
        return make_error_response(
            ErrorCode.CUSTOM_ENDPOINT_ERROR,
            f"Custom endpoint {id} did not answer the connection test",
            {"endpoint": id, "base_url": endpoint.base_url},
        )
    return {"success": True, "endpoint_id": id}


@mcp.tool()
@validate_input(RemoveCustomEndpointInput)
async def remove_custom_endpoint(endpoint_id: str) -> dict[str, Any]:
    """Remove a registered custom endpoint."""
    try:
        removed = get_engine().remove_custom_endpoint(endpoint_id)
    except Exception as e:
        return _tool_error("remove_custom_endpoint", e)
    return {"success": True, "endpoint_id": endpoint_id, "removed": removed}


async def initialize_server() -> None:
    """Initialize configuration, logging, observability and the engine."""
    global _engine

    config = load_config()
    setup_logging(config.log_level.value, json_logs=config.observability.json_logs)
    obs = initialize_observability(enable_metrics=config.observability.enable_metrics)

    logger.info("Initializing ContextForge server...", extra={"environment": config.environment.value})
    try:
        _engine = ContextForgeEngine.from_config(config)
    except Exception as e:
        logger.error(f"Failed to initialize server: {e}", exc_info=True)
        raise

    obs.event("server_started", {"providers": _engine.dispatcher.credentials.providers})


async def cleanup_server() -> None:
    """Cleanup server resources on shutdown."""
    global _engine

    if _engine is None:
        return

    logger.info("Cleaning up ContextForge server...")
    try:
        await _engine.close()
    except Exception as e:
        logger.error(f"Error during cleanup: {e}", exc_info=True)
    finally:
        _engine = None
        get_observability().event("server_stopped", {})


def main() -> None:
    """CLI entry point for the contextforge command."""
    mcp.run()


if __name__ == "__main__":
    main()
