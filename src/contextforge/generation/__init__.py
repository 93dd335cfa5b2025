"""
Generation Module

Provider-agnostic dispatch, credentials snapshot, custom endpoints,
batch fan-out and model comparison.
"""

from .batch import (
    BatchEngine,
    BatchRequest,
    BatchResult,
    ComparisonEntry,
    ComparisonMetrics,
    ComparisonResult,
    comparison_score,
)
from .credentials import ProviderCredential, ProviderCredentials
from .dispatcher import GenerationDispatcher
from .endpoints import (
    CustomEndpointStore,
    EndpointPersistence,
    InMemoryEndpointPersistence,
    JsonFileEndpointPersistence,
)

__all__ = [
    "BatchEngine",
    "BatchRequest",
    "BatchResult",
    "ComparisonEntry",
    "ComparisonMetrics",
    "ComparisonResult",
    "comparison_score",
    "ProviderCredential",
    "ProviderCredentials",
    "GenerationDispatcher",
    "CustomEndpointStore",
    "EndpointPersistence",
    "InMemoryEndpointPersistence",
    "JsonFileEndpointPersistence",
]
