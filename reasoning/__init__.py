"""
Fixpoint Reasoning Module
Forward-chaining inference over string facts

This module contains the reasoning components:
- Membership Index: hash set mirroring the fact sequence
- Inference Engine: fixpoint driver for forward chaining
- Knowledge Session: rules, facts and index kept in sync
- Self Check: smoke checks printed as OK/FAIL lines
"""

__version__ = "1.0.0"
__author__ = "Fixpoint Development Team"

from .index import MembershipIndex, IndexConfig, rebuild_index
from .engine import (
    InferenceEngine,
    EngineConfig,
    InferenceResult,
    InferenceError,
    ResourceExhaustedError,
    ConvergenceError,
    InferenceCancelled,
    all_premises_true,
    run_inference,
    load_engine_config,
)
from .session import KnowledgeSession, IndexPolicy
from .selfcheck import run_selfcheck, SelfCheckReport

__all__ = [
    "MembershipIndex",
    "IndexConfig",
    "rebuild_index",
    "InferenceEngine",
    "EngineConfig",
    "InferenceResult",
    "InferenceError",
    "ResourceExhaustedError",
    "ConvergenceError",
    "InferenceCancelled",
    "all_premises_true",
    "run_inference",
    "load_engine_config",
    "KnowledgeSession",
    "IndexPolicy",
    "run_selfcheck",
    "SelfCheckReport",
]
