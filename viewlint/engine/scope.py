"""
Scope stabilization across the host/page boundary.

Locators are not stable: the same selector queried from the host and from
page script may not resolve to the same elements. Every candidate root is
therefore tagged once with a generated marker attribute (reused when
already present), and both the host-side locators and the page-side query
surface are derived from that marker set.
"""

from __future__ import annotations

import inspect
import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Sequence

from ..errors import ScopeResolutionError
from ..helpers import to_list
from ..types import ScopeDescriptor, SetupOpts
from . import scripts

if TYPE_CHECKING:
    from playwright.async_api import JSHandle, Locator, Page

logger = logging.getLogger(__name__)


class NodeScope:
    """Host-side scope: locator helpers constrained to the resolved roots."""

    def __init__(self, page: Page, roots: list[Locator]):
        self.page = page
        self.roots = roots

    def locator(self, selector: str) -> Locator:
        """Locator for ``selector`` within any of the scope roots."""
        if not self.roots:
            return self.page.locator(selector)
        merged = self.roots[0]
        for root in self.roots[1:]:
            merged = merged.or_(root)
        return merged.locator(selector)


@dataclass
class ResolvedScope:
    markers: tuple[str, ...]
    node_scope: NodeScope
    browser_scope: JSHandle
    descriptors: tuple[str, ...] = field(default_factory=tuple)

    async def dispose(self) -> None:
        await self.browser_scope.dispose()


def marker_selector(marker: str) -> str:
    return f'[{scripts.ROOT_MARKER_ATTR}="{marker}"]'


@dataclass(frozen=True)
class SelectorScope:
    """Scope descriptor for an ad hoc CSS selector."""

    selector: str

    @property
    def name(self) -> str:
        return self.selector

    def get_locator(self, *, page: Page, opts: SetupOpts) -> Locator:
        return page.locator(self.selector)


def describe_scope(scope: Any) -> str:
    name = getattr(scope, "name", None)
    if name:
        return str(name)
    return type(scope).__name__


class ScopeStabilizer:
    """Resolves scope descriptors into marker-stabilized roots for one page."""

    def __init__(self, page: Page, opts: SetupOpts | None = None):
        self.page = page
        self.opts = opts or {}

    async def _requested_locators(self, scopes: Sequence[ScopeDescriptor]) -> list[Locator]:
        locators: list[Locator] = []
        for scope in scopes:
            resolved = scope.get_locator(page=self.page, opts=self.opts)
            if inspect.isawaitable(resolved):
                resolved = await resolved
            locators.extend(to_list(resolved))
        return locators

    async def _ensure_marker(self, handle: Any) -> str:
        marker = await handle.evaluate(
            scripts.ENSURE_ROOT_MARKER,
            {"attribute": scripts.ROOT_MARKER_ATTR, "candidate": uuid.uuid4().hex},
        )
        if not marker:
            raise ScopeResolutionError(
                f"Expected {scripts.ROOT_MARKER_ATTR} to be set on a scope root"
            )
        return str(marker)

    async def resolve(self, scope: Sequence[ScopeDescriptor] | ScopeDescriptor | None = None) -> ResolvedScope:
        """
        Resolve a scope spec into roots addressable from both sides.

        No scope spec defaults to ``body``.

        Raises:
            ScopeResolutionError: if the scope spec matches zero elements
        """
        scopes = to_list(scope)  # type: ignore[arg-type]
        names = tuple(describe_scope(s) for s in scopes)

        if scopes:
            locators = await self._requested_locators(scopes)
        else:
            locators = [self.page.locator("body")]

        handles = []
        for loc in locators:
            handles.extend(await loc.element_handles())

        if not handles:
            if names:
                detail = f"Scope(s) {', '.join(repr(n) for n in names)} matched no elements."
            else:
                detail = "Failed to resolve document.body for the default scope."
            raise ScopeResolutionError(
                f"Scope resolved to zero root elements. {detail} "
                "Ensure your scope locators match at least one element."
            )

        markers: list[str] = []
        try:
            for handle in handles:
                marker = await self._ensure_marker(handle)
                if marker not in markers:
                    markers.append(marker)
        finally:
            for handle in handles:
                await handle.dispose()

        roots = [self.page.locator(marker_selector(m)) for m in markers]
        browser_scope = await self.page.evaluate_handle(
            scripts.CREATE_BROWSER_SCOPE,
            {"attribute": scripts.ROOT_MARKER_ATTR, "markers": markers},
        )

        logger.debug("resolved scope %s to %d root(s)", names or ("body",), len(markers))
        return ResolvedScope(
            markers=tuple(markers),
            node_scope=NodeScope(self.page, roots),
            browser_scope=browser_scope,
            descriptors=names,
        )
