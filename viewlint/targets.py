"""Compilation of URLs and named registry entries into lint targets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from .config.layers import url_layer, with_meta_name
from .config.resolve import ResolvedConfiguration
from .helpers import lookup_named, to_list
from .engine.scope import SelectorScope
from .types import SetupOpts, Target, ViewInstance
from .views import default_view


@dataclass
class NamedView:
    """Gives an anonymous registry view its registry key as a name."""

    view: Any
    name: str

    async def setup(self, opts: SetupOpts | None = None) -> ViewInstance:
        return await self.view.setup(opts)


@dataclass
class NamedScope:
    """Gives an anonymous registry scope its registry key as a name."""

    scope: Any
    name: str

    def get_locator(self, *, page: Any, opts: SetupOpts) -> Any:
        return self.scope.get_locator(page=page, opts=opts)


def resolve_view(resolved: ResolvedConfiguration, name: str | None) -> Any:
    if not name:
        return default_view
    view = lookup_named("view", name, resolved.view_registry)
    if getattr(view, "name", None):
        return view
    return NamedView(view=view, name=name)


def resolve_option_layers(resolved: ResolvedConfiguration, names: Sequence[str]) -> list[SetupOpts]:
    layers: list[SetupOpts] = []
    for name in names:
        entry = lookup_named("option", name, resolved.options_registry)
        layers.extend(with_meta_name(layer, name) for layer in to_list(entry))
    return layers


def resolve_scopes(
    resolved: ResolvedConfiguration,
    names: Sequence[str],
    selectors: Sequence[str] = (),
) -> list[Any]:
    scopes: list[Any] = []
    for name in names:
        entry = lookup_named("scope", name, resolved.scope_registry)
        for scope in to_list(entry):
            scopes.append(scope if getattr(scope, "name", None) else NamedScope(scope=scope, name=name))
    scopes.extend(SelectorScope(selector) for selector in selectors)
    return scopes


def build_targets(
    resolved: ResolvedConfiguration,
    *,
    urls: Sequence[str] = (),
    view: str | None = None,
    options: Sequence[str] = (),
    scopes: Sequence[str] = (),
    selectors: Sequence[str] = (),
) -> list[Target]:
    """
    Compile targets: one per URL, or a single view target when no URL is given.

    Option layers apply in order after the URL layer; registry scopes come
    before ad hoc selector scopes.

    Raises:
        ConfigurationError: unknown named view, option or scope
    """
    target_view = resolve_view(resolved, view)
    option_layers = resolve_option_layers(resolved, options)
    target_scopes = resolve_scopes(resolved, scopes, selectors) or None

    if not urls:
        return [Target(view=target_view, options=option_layers, scope=target_scopes, kind="view")]

    return [
        Target(
            view=target_view,
            options=[url_layer(url), *option_layers],
            scope=target_scopes,
            kind="url",
            id=url,
        )
        for url in urls
    ]
