from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from ..errors import ConfigurationError
from ..types import Plugin

CONFIG_KEYS = frozenset({"plugins", "rules", "options", "views", "scopes", "extends"})
_MAPPING_KEYS = ("plugins", "rules", "options", "views", "scopes")

_EMPTY: Mapping[str, Any] = MappingProxyType({})


def _coerce_mapping(key: str, value: Any) -> Mapping[str, Any]:
    if value is None:
        return _EMPTY
    if not isinstance(value, Mapping):
        raise ConfigurationError(
            f"Invalid config: '{key}' must be a mapping, got {type(value).__name__}."
        )
    for name in value:
        if not isinstance(name, str):
            raise ConfigurationError(f"Invalid config: keys of '{key}' must be strings, got {name!r}.")
    return MappingProxyType(dict(value))


@dataclass(frozen=True, eq=False)
class ConfigObject:
    """A validated configuration fragment.

    Build instances with ``ConfigObject.from_value``; malformed input is
    rejected at that boundary so the resolver never sees loose dicts.
    """

    plugins: Mapping[str, Plugin] = field(default_factory=lambda: MappingProxyType({}))
    rules: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    views: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    scopes: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    extends: tuple[Any, ...] = ()

    @classmethod
    def from_value(cls, value: Any) -> ConfigObject:
        if isinstance(value, ConfigObject):
            return value
        if not isinstance(value, Mapping):
            raise ConfigurationError(
                f"Invalid config: expected a config mapping or a list of them, got {type(value).__name__}."
            )

        unknown = sorted(str(k) for k in value if k not in CONFIG_KEYS)
        if unknown:
            allowed = ", ".join(f"'{k}'" for k in sorted(CONFIG_KEYS))
            raise ConfigurationError(
                f"Invalid config: unknown key(s) {', '.join(repr(k) for k in unknown)}. Allowed keys: {allowed}."
            )

        parts = {key: _coerce_mapping(key, value.get(key)) for key in _MAPPING_KEYS}

        for namespace, plugin in parts["plugins"].items():
            if not isinstance(plugin, Plugin):
                raise ConfigurationError(
                    f"Invalid config: plugin '{namespace}' must be a Plugin, got {type(plugin).__name__}."
                )

        extends = value.get("extends")
        if extends is None:
            extends_tuple: tuple[Any, ...] = ()
        elif isinstance(extends, (list, tuple)):
            extends_tuple = tuple(extends)
        else:
            raise ConfigurationError(
                f"Invalid config: 'extends' must be a list, got {type(extends).__name__}."
            )

        return cls(extends=extends_tuple, **parts)

    def without_extends(self) -> ConfigObject:
        return ConfigObject(
            plugins=self.plugins,
            rules=self.rules,
            options=self.options,
            views=self.views,
            scopes=self.scopes,
        )

    def is_empty(self) -> bool:
        return not (self.plugins or self.rules or self.options or self.views or self.scopes)
