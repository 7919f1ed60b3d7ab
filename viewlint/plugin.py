"""Helpers for rule and plugin authors."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from .types import Plugin, PluginMeta, ReportSeverity, RuleDefinition, RuleDocs, RuleMeta, RuleRun


def define_rule(
    run: RuleRun | None = None,
    *,
    severity: ReportSeverity | None = None,
    schema: Any = None,
    default_options: tuple[Any, ...] | list[Any] = (),
    has_side_effects: bool = False,
    description: str | None = None,
    recommended: bool = False,
) -> RuleDefinition | Callable[[RuleRun], RuleDefinition]:
    """
    Build a RuleDefinition, directly or as a decorator.

        class Options(TypedDict):
            threshold: float

        @define_rule(severity="warn", schema=Options, default_options=[{"threshold": 10}])
        async def my_rule(context):
            (options,) = context.options

    ``schema`` is any type pydantic can validate (a TypedDict, a model, a
    plain annotation) or a list of them for positional options.
    """
    docs = RuleDocs(description=description, recommended=recommended) if description or recommended else None
    meta = RuleMeta(
        severity=severity,
        schema=schema,
        default_options=tuple(default_options),
        has_side_effects=has_side_effects,
        docs=docs,
    )

    def wrap(fn: RuleRun) -> RuleDefinition:
        return RuleDefinition(run=fn, meta=meta)

    if run is not None:
        return wrap(run)
    return wrap


def define_plugin(
    rules: Mapping[str, RuleDefinition],
    configs: Mapping[str, Any] | None = None,
    *,
    name: str | None = None,
    version: str | None = None,
    namespace: str | None = None,
) -> Plugin:
    return Plugin(
        rules=dict(rules),
        configs=dict(configs or {}),
        meta=PluginMeta(name=name, version=version, namespace=namespace),
    )
