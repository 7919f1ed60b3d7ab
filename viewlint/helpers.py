"""Small shared helpers: list coercion, deep merge and suffix-based id resolution."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, TypeVar

from .errors import ConfigurationError

T = TypeVar("T")


def to_list(value: T | list[T] | tuple[T, ...] | None) -> list[T]:
    """Wrap a single value in a list; ``None`` becomes an empty list."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def is_record(value: Any) -> bool:
    return isinstance(value, Mapping)


def deep_merge(base: Any, override: Any) -> Any:
    """Merge ``override`` onto ``base``.

    Mappings merge recursively; lists and scalars in ``override`` replace.
    ``None`` on either side yields the other value. Inputs are never mutated.
    """
    if override is None:
        return base
    if base is None:
        return override

    if is_record(base) and is_record(override):
        merged = dict(base)
        for key, value in override.items():
            merged[key] = deep_merge(base.get(key), value)
        return merged

    return override


def merge_all(layers: Iterable[Any]) -> dict[str, Any]:
    """Ordered deep merge of mapping layers (later layers win)."""
    merged: dict[str, Any] = {}
    for layer in layers:
        merged = deep_merge(merged, layer)
    return merged


def _quoted(names: Iterable[str]) -> str:
    return ", ".join(f"'{name}'" for name in names)


def suffix_candidates(name: str, known: Iterable[str]) -> list[str]:
    """Known ids ending in ``/<name>``, sorted."""
    return sorted(k for k in known if k.endswith(f"/{name}"))


def resolve_rule_id(rule_id: str, known_rule_ids: Iterable[str]) -> str:
    """Resolve a bare or canonical rule reference to its canonical id.

    Raises:
        ConfigurationError: unknown rule, or a bare name matching several plugins
    """
    known = list(known_rule_ids)
    if rule_id in known:
        return rule_id

    candidates = [] if "/" in rule_id else suffix_candidates(rule_id, known)

    if len(candidates) == 1:
        return candidates[0]

    if len(candidates) > 1:
        raise ConfigurationError(
            f"Ambiguous rule '{rule_id}'. Use a fully-qualified rule ID. Matches: {_quoted(candidates)}."
        )

    available = sorted(known)
    if not available:
        hint = "No rules are registered; did you forget to configure a plugin?"
    else:
        hint = f"Available rules: {_quoted(available)}."
    raise ConfigurationError(f"Unknown rule '{rule_id}'. {hint}")


def lookup_named(kind: str, name: str, registry: Mapping[str, Any]) -> Any:
    """Look up a named registry entry, listing known names on failure."""
    if name in registry:
        return registry[name]
    known = sorted(registry)
    if not known:
        hint = f"No named {kind}s are defined in config."
    else:
        hint = f"Known {kind}s: {_quoted(known)}."
    raise ConfigurationError(f"Unknown {kind} '{name}'. {hint}")
