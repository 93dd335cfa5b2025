"""
Validation Module

Pydantic input schemas for MCP tools and the decorator that enforces them.
"""

from .decorators import validate_input
from .tool_schemas import (
    AddCustomEndpointInput,
    BatchGenerateInput,
    BatchRequestInput,
    CheckStatusInput,
    CompareModelsInput,
    GenerateInput,
    GetCostEstimatesInput,
    GetModelRecommendationsInput,
    GetOptimizationInput,
    ListModelsInput,
    MessageInput,
    OptimizeForModelInput,
    RemoveCustomEndpointInput,
)

__all__ = [
    "validate_input",
    "AddCustomEndpointInput",
    "BatchGenerateInput",
    "BatchRequestInput",
    "CheckStatusInput",
    "CompareModelsInput",
    "GenerateInput",
    "GetCostEstimatesInput",
    "GetModelRecommendationsInput",
    "GetOptimizationInput",
    "ListModelsInput",
    "MessageInput",
    "OptimizeForModelInput",
    "RemoveCustomEndpointInput",
]
