"""Resolution of flattened config fragments into a canonical, immutable registry."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from ..errors import ConfigurationError
from ..helpers import resolve_rule_id, to_list
from ..types import (
    REPORT_SEVERITIES,
    SEVERITY_INPUTS,
    NormalizedRuleConfig,
    Plugin,
    RuleDefinition,
)
from .extends import flatten_configs
from .options import parse_rule_options

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedConfiguration:
    """Everything the engine needs, built once per engine instance."""

    plugins: Mapping[str, Plugin]
    rule_registry: Mapping[str, RuleDefinition]
    rules: Mapping[str, NormalizedRuleConfig]
    options_registry: Mapping[str, Any]
    view_registry: Mapping[str, Any]
    scope_registry: Mapping[str, Any]

    def enabled_rule_ids(self) -> list[str]:
        """Configured rules with severity other than ``off``, in registration order."""
        return [
            rule_id
            for rule_id in self.rule_registry
            if rule_id in self.rules and self.rules[rule_id].severity != "off"
        ]


def normalize_rule_setting(rule_id: str, setting: Any) -> tuple[str, list[Any]]:
    """Split ``"warn"`` or ``["warn", {...}]`` into (severity, raw options)."""
    if setting is None:
        raise ConfigurationError(
            f"Rule '{rule_id}' is configured with None. Use 'off' to disable a rule."
        )

    if isinstance(setting, (list, tuple)):
        if not setting:
            raise ConfigurationError(f"Rule '{rule_id}' is configured with an empty list.")
        severity, *raw_options = setting
    else:
        severity, raw_options = setting, []

    if severity not in SEVERITY_INPUTS:
        allowed = ", ".join(f"'{s}'" for s in SEVERITY_INPUTS)
        raise ConfigurationError(
            f"Invalid severity {severity!r} for rule '{rule_id}'. Expected one of {allowed}."
        )
    return severity, raw_options


def build_rule_registry(plugins: Mapping[str, Plugin]) -> dict[str, RuleDefinition]:
    registry: dict[str, RuleDefinition] = {}
    for namespace, plugin in plugins.items():
        for rule_name, rule in (plugin.rules or {}).items():
            if "/" in rule_name:
                raise ConfigurationError(
                    f"Invalid rule name '{rule_name}' in plugin '{namespace}'. Rule names must not include '/'."
                )
            if not isinstance(rule, RuleDefinition):
                raise ConfigurationError(
                    f"Rule '{rule_name}' in plugin '{namespace}' must be a RuleDefinition, "
                    f"got {type(rule).__name__}."
                )
            severity = rule.meta.severity
            if severity is not None and severity not in REPORT_SEVERITIES:
                raise ConfigurationError(
                    f"Rule '{namespace}/{rule_name}' declares invalid default severity {severity!r}."
                )

            rule_id = f"{namespace}/{rule_name}"
            if rule_id in registry:
                raise ConfigurationError(f"Duplicate canonical rule id '{rule_id}'.")
            registry[rule_id] = rule
    return registry


def resolve_configuration(
    *,
    base_config: Any = None,
    override_config: Any = None,
    plugins: Mapping[str, Plugin] | None = None,
) -> ResolvedConfiguration:
    """
    Resolve config fragments into a ResolvedConfiguration.

    ``base_config`` fragments are processed before ``override_config``
    fragments; within the combined sequence the last setting for a rule wins.

    Raises:
        ConfigurationError: for any invalid or unresolvable configuration
    """
    fragments: list[Any] = [*to_list(base_config), *to_list(override_config)]
    state = flatten_configs(fragments, plugins=plugins)

    options_registry: dict[str, Any] = {}
    view_registry: dict[str, Any] = {}
    scope_registry: dict[str, Any] = {}
    rule_events: list[tuple[str, Any]] = []

    for config in state.output:
        rule_events.extend(config.rules.items())
        options_registry.update(config.options)
        view_registry.update(config.views)
        scope_registry.update(config.scopes)

    rule_registry = build_rule_registry(state.plugins)
    rules = _resolve_rule_settings(rule_events, rule_registry)

    logger.debug(
        "resolved %d plugin(s), %d rule(s), %d configured",
        len(state.plugins),
        len(rule_registry),
        len(rules),
    )

    return ResolvedConfiguration(
        plugins=MappingProxyType(dict(state.plugins)),
        rule_registry=MappingProxyType(rule_registry),
        rules=MappingProxyType(rules),
        options_registry=MappingProxyType(options_registry),
        view_registry=MappingProxyType(view_registry),
        scope_registry=MappingProxyType(scope_registry),
    )


def _resolve_rule_settings(
    rule_events: Iterable[tuple[str, Any]],
    rule_registry: Mapping[str, RuleDefinition],
) -> dict[str, NormalizedRuleConfig]:
    rules: dict[str, NormalizedRuleConfig] = {}

    for raw_rule_id, setting in rule_events:
        rule_id = resolve_rule_id(raw_rule_id, rule_registry)
        rule = rule_registry[rule_id]
        severity, raw_options = normalize_rule_setting(rule_id, setting)
        previous = rules.get(rule_id)

        if severity == "inherit":
            if raw_options:
                options = parse_rule_options(rule_id, rule, raw_options)
            elif previous is not None:
                options = previous.options
            else:
                options = parse_rule_options(rule_id, rule, [])
            rules[rule_id] = NormalizedRuleConfig(
                severity=rule.meta.severity or "error",
                options=options,
            )
            continue

        rules[rule_id] = NormalizedRuleConfig(
            severity=severity,  # type: ignore[arg-type]
            options=parse_rule_options(rule_id, rule, raw_options),
        )

    return rules
