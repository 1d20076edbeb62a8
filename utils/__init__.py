"""
Fixpoint Utils Module
Utility components

This module contains utility components:
- Metrics: inference run metrics collection
"""

__version__ = "1.0.0"
__author__ = "Fixpoint Development Team"

from .metrics import InferenceMetrics, MetricsCollector

__all__ = [
    "InferenceMetrics",
    "MetricsCollector",
]
