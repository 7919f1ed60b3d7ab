"""Validation of rule options against a rule's declared schema (pydantic)."""

from __future__ import annotations

from typing import Any, Sequence

from pydantic import TypeAdapter, ValidationError

from ..errors import ConfigurationError
from ..helpers import deep_merge
from ..types import RuleDefinition


def is_positional_schema(schema: Any) -> bool:
    return isinstance(schema, (list, tuple))


def _validate(rule_id: str, schema: Any, value: Any, index: int | None) -> Any:
    where = f" at index {index}" if index is not None else ""
    try:
        return TypeAdapter(schema).validate_python(value)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid options for rule '{rule_id}'{where}. {e}") from e


def parse_rule_options(
    rule_id: str,
    rule: RuleDefinition,
    raw_options: Sequence[Any],
) -> tuple[Any, ...]:
    """Merge raw options onto the rule's defaults and validate them.

    Args:
        rule_id: Canonical rule id (for error messages)
        rule: Rule whose ``meta.schema`` / ``meta.default_options`` apply
        raw_options: Positional option values from the config

    Returns:
        Validated options, one per schema slot

    Raises:
        ConfigurationError: too many options, options for a schema-less rule,
            or a value that fails validation
    """
    schema = rule.meta.schema
    defaults = list(rule.meta.default_options or ())

    if schema is None:
        if raw_options:
            raise ConfigurationError(
                f"Rule '{rule_id}' does not accept options, but options were provided."
            )
        return ()

    slots: Sequence[Any] = list(schema) if is_positional_schema(schema) else [schema]

    if len(raw_options) > len(slots):
        raise ConfigurationError(
            f"Too many options for rule '{rule_id}'. "
            f"Expected at most {len(slots)} but got {len(raw_options)}."
        )

    validated = []
    for index, slot_schema in enumerate(slots):
        base = defaults[index] if index < len(defaults) else None
        override = raw_options[index] if index < len(raw_options) else None
        merged = deep_merge(base, override)
        validated.append(
            _validate(rule_id, slot_schema, merged, index if is_positional_schema(schema) else None)
        )

    return tuple(validated)
