"""
Flattening of configuration fragments and their ``extends`` entries.

The walk is an explicit DAG traversal producing the ordered list of
fragments to merge. Two stacks guard against cycles:

- ``reference_stack``: string references (``"plugin/config"``) currently expanding
- ``node_stack``: identities of list/mapping nodes currently expanding

A fragment can recurse through either, so both are checked.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from ..errors import ConfigurationError
from ..types import Plugin
from .schema import ConfigObject


@dataclass
class FlattenState:
    plugins: dict[str, Plugin] = field(default_factory=dict)
    output: list[ConfigObject] = field(default_factory=list)
    node_stack: list[int] = field(default_factory=list)
    reference_stack: list[str] = field(default_factory=list)


def _quoted(names: Iterable[str]) -> str:
    return ", ".join(f"'{name}'" for name in names)


def _known_plugins_hint(plugins: Mapping[str, Plugin]) -> str:
    known = sorted(plugins)
    if not known:
        return "No plugins are registered."
    return f"Known plugins: {_quoted(known)}."


def resolve_extends_reference(reference: str, plugins: Mapping[str, Plugin]) -> Any:
    """
    Resolve an extends string to a plugin config.

    ``"<namespace>/<config>"`` looks up an already registered namespace.
    A bare ``"<config>"`` matches the one namespace that equals it or ends
    with ``/<config>``.
    """
    normalized = reference.strip()
    namespace, sep, config_name = normalized.rpartition("/")

    if not sep:
        config_name = normalized
        candidates = sorted(
            ns for ns in plugins if ns == normalized or ns.endswith(f"/{normalized}")
        )
        if not candidates:
            raise ConfigurationError(
                f"Invalid extends reference '{reference}'. Expected '<configName>' or "
                f"'<pluginNamespace>/<configName>' naming a registered plugin. "
                f"{_known_plugins_hint(plugins)}"
            )
        if len(candidates) > 1:
            raise ConfigurationError(
                f"Ambiguous plugin '{normalized}' in extends '{reference}'. "
                f"Specify with a namespace. Matches: {_quoted(candidates)}."
            )
        namespace = candidates[0]
    else:
        namespace = namespace.strip()
        config_name = config_name.strip()
        if not namespace or not config_name:
            raise ConfigurationError(
                f"Invalid extends reference '{reference}'. Expected '<pluginNamespace>/<configName>'."
            )
        if namespace not in plugins:
            raise ConfigurationError(
                f"Unknown plugin referenced by extends '{reference}'. "
                f"Ensure it is registered in plugins. {_known_plugins_hint(plugins)}"
            )

    plugin = plugins[namespace]
    if not plugin.configs:
        raise ConfigurationError(f"No configuration found in plugin '{namespace}'.")

    if config_name not in plugin.configs:
        available = sorted(plugin.configs)
        raise ConfigurationError(
            f"Unknown config '{config_name}' in plugin '{namespace}' (extends '{reference}'). "
            f"Available configs: {_quoted(available)}."
        )

    return plugin.configs[config_name]


def _apply_extends_entry(entry: Any, state: FlattenState) -> None:
    if not isinstance(entry, str):
        apply_config(entry, state)
        return

    normalized = entry.strip()
    if normalized in state.reference_stack:
        start = state.reference_stack.index(normalized)
        chain = " -> ".join([*state.reference_stack[start:], normalized])
        raise ConfigurationError(f"Circular extends detected: {chain}")

    state.reference_stack.append(normalized)
    try:
        resolved = resolve_extends_reference(normalized, state.plugins)
        apply_config(resolved, state)
    finally:
        state.reference_stack.pop()


def apply_config(node: Any, state: FlattenState) -> None:
    """Expand one fragment (or nested list of fragments) into ``state.output``."""
    node_id = id(node)
    if node_id in state.node_stack:
        kind = "config list" if isinstance(node, (list, tuple)) else "config item"
        chain = " -> ".join(state.reference_stack)
        suffix = f" (via {chain})" if chain else ""
        raise ConfigurationError(
            f"Circular extends detected: a {kind} was recursively extended{suffix}."
        )

    state.node_stack.append(node_id)
    try:
        if isinstance(node, (list, tuple)):
            for item in node:
                apply_config(item, state)
            return

        config = ConfigObject.from_value(node)

        # Plugins first so extends strings can name namespaces introduced here.
        state.plugins.update(config.plugins)

        for entry in config.extends:
            _apply_extends_entry(entry, state)

        rest = config.without_extends()
        if not rest.is_empty():
            state.output.append(rest)
    finally:
        state.node_stack.pop()


def flatten_configs(
    configs: Iterable[Any],
    *,
    plugins: Mapping[str, Plugin] | None = None,
) -> FlattenState:
    """Flatten fragments in order; ``plugins`` are registered before any fragment."""
    state = FlattenState(plugins=dict(plugins or {}))
    for config in configs:
        apply_config(config, state)
    return state


def define_config(*configs: Any) -> list[ConfigObject]:
    """Flatten config fragments (resolving ``extends``) into a plain list of fragments."""
    return flatten_configs(configs).output
