"""
Fixpoint Inference Metrics
Per-run metrics collection for the inference engine

This module implements:
- Inference run metrics (passes, rule evaluations, deductions, timing)
- Bounded metrics history
- Summary statistics over recent runs
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class InferenceMetrics:
    """Container for one inference run's metrics."""
    passes: int
    rules_evaluated: int
    deductions: int
    fact_count: int
    elapsed: float
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def from_result(cls, result: Any, fact_count: int) -> 'InferenceMetrics':
        """Build metrics from an ``InferenceResult``."""
        return cls(
            passes=result.passes,
            rules_evaluated=result.rules_evaluated,
            deductions=len(result.derived),
            fact_count=fact_count,
            elapsed=result.elapsed,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'passes': self.passes,
            'rules_evaluated': self.rules_evaluated,
            'deductions': self.deductions,
            'fact_count': self.fact_count,
            'elapsed': self.elapsed,
            'timestamp': self.timestamp,
        }


class MetricsCollector:
    """Keeps a bounded history of inference runs."""

    def __init__(self, max_history_size: int = 1000):
        self.max_history_size = max_history_size
        self.history: deque = deque(maxlen=max_history_size)

    def record(self, metrics: InferenceMetrics) -> None:
        self.history.append(metrics)
        logger.debug(f"Recorded inference metrics: {metrics.to_dict()}")

    def latest(self) -> Optional[InferenceMetrics]:
        """Get the most recent run's metrics."""
        if not self.history:
            return None
        return self.history[-1]

    def get_summary(self) -> Dict[str, Any]:
        """Summary statistics over the stored history."""
        if not self.history:
            return {'run_count': 0}

        elapsed = np.array([m.elapsed for m in self.history], dtype=np.float64)
        passes = np.array([m.passes for m in self.history], dtype=np.int64)
        deductions = np.array([m.deductions for m in self.history], dtype=np.int64)

        return {
            'run_count': len(self.history),
            'total_deductions': int(deductions.sum()),
            'elapsed': {
                'mean': float(np.mean(elapsed)),
                'max': float(np.max(elapsed)),
                'p95': float(np.percentile(elapsed, 95)),
            },
            'passes': {
                'mean': float(np.mean(passes)),
                'max': int(np.max(passes)),
            },
            'latest': self.history[-1].to_dict(),
        }

    def clear_history(self) -> None:
        """Clear all stored metrics."""
        self.history.clear()
        logger.info("Cleared metrics history")
