"""Views: how a page is acquired, reset and released for linting."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Sequence, Union

from playwright.async_api import Page, async_playwright

from .errors import ConfigurationError
from .helpers import to_list
from .types import SetupOpts, ViewInstance

logger = logging.getLogger(__name__)

ViewAction = Callable[[Page], Union[Awaitable[None], None]]


async def _run_actions(page: Page, actions: Sequence[ViewAction]) -> None:
    for action in actions:
        outcome = action(page)
        if inspect.isawaitable(outcome):
            await outcome
        await page.wait_for_load_state("networkidle")


async def _open_page(opts: SetupOpts) -> tuple[Page, Callable[[], Awaitable[None]]]:
    """Launch Chromium with the ``launch``/``context`` layers; return the page and a closer."""
    playwright = await async_playwright().start()
    try:
        browser = await playwright.chromium.launch(**(opts.get("launch") or {}))
        context = await browser.new_context(**(opts.get("context") or {}))
        page = await context.new_page()
    except BaseException:
        await playwright.stop()
        raise

    async def close() -> None:
        try:
            await context.close()
            await browser.close()
        finally:
            await playwright.stop()

    return page, close


@dataclass
class ActionsView:
    """Navigates to ``context.base_url`` and replays actions on every reset."""

    actions: list[ViewAction] = field(default_factory=list)
    name: str | None = None

    async def setup(self, opts: SetupOpts | None = None) -> ViewInstance:
        opts = opts or {}
        base_url = (opts.get("context") or {}).get("base_url")
        if not base_url:
            raise ConfigurationError(
                "Views created with define_view_from_actions require options.context.base_url to be set."
            )

        page, close = await _open_page(opts)

        async def reset() -> None:
            logger.debug("navigating to %s", base_url)
            await page.goto(base_url)
            await page.wait_for_load_state("networkidle")
            await _run_actions(page, self.actions)

        try:
            await reset()
        except BaseException:
            await close()
            raise

        return ViewInstance(page=page, reset=reset, close=close)


@dataclass
class HtmlView:
    """Renders a fixed HTML document; reset re-renders it."""

    html: str
    actions: list[ViewAction] = field(default_factory=list)
    name: str | None = None

    async def setup(self, opts: SetupOpts | None = None) -> ViewInstance:
        page, close = await _open_page(opts or {})

        async def reset() -> None:
            await page.set_content(self.html)
            await _run_actions(page, self.actions)

        try:
            await reset()
        except BaseException:
            await close()
            raise

        return ViewInstance(page=page, reset=reset, close=close)


def define_view_from_actions(
    actions: ViewAction | Sequence[ViewAction] | None = None,
    name: str | None = None,
) -> ActionsView:
    """A view that loads ``context.base_url`` then runs ``actions`` in order.

    Each action receives the page and may be sync or async.
    """
    return ActionsView(actions=to_list(actions), name=name)  # type: ignore[arg-type]


def define_view_from_html(
    html: str,
    actions: ViewAction | Sequence[ViewAction] | None = None,
    name: str | None = None,
) -> HtmlView:
    return HtmlView(html=html, actions=to_list(actions), name=name)  # type: ignore[arg-type]


default_view = define_view_from_actions([], name="default")
