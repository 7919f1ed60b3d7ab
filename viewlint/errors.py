"""Exception hierarchy for viewlint."""

from __future__ import annotations


class ViewLintError(Exception):
    """Base class for all viewlint errors."""


class ConfigurationError(ViewLintError):
    """Invalid configuration: unknown/ambiguous references, circular extends, bad options.

    Raised eagerly while resolving configuration, before any rule runs.
    """


class ScopeResolutionError(ViewLintError):
    """A target's scope resolved to zero root elements."""


class EvaluationProtocolError(ViewLintError):
    """Internal invariant broken on the host/page boundary.

    Raised when a report arrives with no active buffer, or when a required
    page-side helper is missing. Never swallowed.
    """


class RuleExecutionError(ViewLintError):
    """A rule's own logic raised while running against a target."""

    def __init__(self, rule_id: str, cause: BaseException):
        self.rule_id = rule_id
        self.cause = cause
        super().__init__(f"Rule '{rule_id}' failed: {cause}")


class ViewSetupError(ViewLintError):
    """A view could not open or reset the page for a target."""

    def __init__(self, target_id: str, cause: BaseException):
        self.target_id = target_id
        self.cause = cause
        super().__init__(f"View for target '{target_id}' failed: {cause}")
