"""
Storage Module

Persistence for optimization results keyed on (subject, target model).
"""

from .base import OptimizationStore
from .factory import create_store
from .memory import MemoryOptimizationStore

__all__ = [
    "OptimizationStore",
    "MemoryOptimizationStore",
    "create_store",
]
