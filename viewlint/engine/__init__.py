"""Lint engine: scope stabilization, page evaluation bridge, suppression and orchestration."""

from .bridge import EvaluationBridge
from .orchestrator import LintOrchestrator, RuleContext
from .scope import NodeScope, ResolvedScope, ScopeStabilizer, SelectorScope
from .suppression import SuppressionResolver

__all__ = [
    "EvaluationBridge",
    "LintOrchestrator",
    "NodeScope",
    "ResolvedScope",
    "RuleContext",
    "ScopeStabilizer",
    "SelectorScope",
    "SuppressionResolver",
]
