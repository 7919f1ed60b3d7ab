"""viewlint - lint rendered web pages for visual and layout defects."""

__version__ = "0.1.0"

from .config import ConfigObject, ResolvedConfiguration, define_config, resolve_configuration
from .errors import (
    ConfigurationError,
    EvaluationProtocolError,
    RuleExecutionError,
    ScopeResolutionError,
    ViewLintError,
    ViewSetupError,
)
from .linter import ViewLint
from .plugin import define_plugin, define_rule
from .types import (
    LintMessage,
    LintResult,
    Plugin,
    PluginMeta,
    RuleDefinition,
    RuleMeta,
    Target,
    ViolationRelation,
    ViolationReport,
)
from .views import default_view, define_view_from_actions, define_view_from_html

__all__ = [
    "ConfigObject",
    "ConfigurationError",
    "EvaluationProtocolError",
    "LintMessage",
    "LintResult",
    "Plugin",
    "PluginMeta",
    "ResolvedConfiguration",
    "RuleDefinition",
    "RuleExecutionError",
    "RuleMeta",
    "ScopeResolutionError",
    "Target",
    "ViewLint",
    "ViewLintError",
    "ViewSetupError",
    "ViolationRelation",
    "ViolationReport",
    "__version__",
    "default_view",
    "define_config",
    "define_plugin",
    "define_rule",
    "define_view_from_actions",
    "define_view_from_html",
    "resolve_configuration",
]
