"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import pytest

from fakes import FakePage, FakeView, cards_dom
from viewlint.config import resolve_configuration
from viewlint.config.resolve import ResolvedConfiguration
from viewlint.types import Plugin, RuleDefinition


@pytest.fixture
def fake_page() -> FakePage:
    """A page with two ``div.card`` elements under ``body``."""
    return FakePage(cards_dom(2))


@pytest.fixture
def fake_view() -> FakeView:
    return FakeView(cards_dom(2), name="cards")


@pytest.fixture
def resolve_rules() -> Callable[..., ResolvedConfiguration]:
    """Resolve a config enabling ``rules`` from a single ``test`` plugin."""

    def resolve(rules: dict[str, RuleDefinition], settings: dict[str, Any] | None = None) -> ResolvedConfiguration:
        plugin = Plugin(rules=rules)
        if settings is None:
            settings = {name: "inherit" for name in rules}
        return resolve_configuration(base_config={"plugins": {"test": plugin}, "rules": settings})

    return resolve


@pytest.fixture(scope="session")
def chromium() -> None:
    """Skip unless Playwright can launch Chromium here."""
    from playwright.async_api import async_playwright

    async def probe() -> None:
        async with async_playwright() as p:
            browser = await p.chromium.launch()
            await browser.close()

    try:
        asyncio.run(probe())
    except Exception as e:  # pragma: no cover - depends on the machine
        pytest.skip(f"Playwright Chromium is not available: {e}")
