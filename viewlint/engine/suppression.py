"""Suppression of violations via the ``data-viewlint-ignore`` attribute."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Iterable, Sequence

from ..types import LintMessage
from . import scripts

if TYPE_CHECKING:
    from playwright.async_api import Page

_TOKEN_SPLIT = re.compile(r"[\s,]+")

SUPPRESS_ALL_TOKENS = frozenset({"all", "*"})


def tokenize(value: str) -> list[str]:
    return [token for token in _TOKEN_SPLIT.split(value.strip()) if token]


def value_suppresses(value: str, rule_id: str) -> bool:
    """Whether one attribute value suppresses ``rule_id``.

    An attribute present with an empty value suppresses every rule.
    """
    tokens = tokenize(value)
    if not tokens:
        return True
    return any(token in SUPPRESS_ALL_TOKENS or token == rule_id for token in tokens)


def is_suppressed(ancestor_values: Iterable[str] | None, rule_id: str) -> bool:
    """Whether any ignore-attribute value on the element or an ancestor suppresses ``rule_id``."""
    if not ancestor_values:
        return False
    return any(value_suppresses(value, rule_id) for value in ancestor_values)


class SuppressionResolver:
    """Splits a rule's messages into reported and suppressed against the live DOM."""

    def __init__(self, page: Page, attribute: str = scripts.IGNORE_ATTR):
        self.page = page
        self.attribute = attribute

    async def ignore_chains(self, selectors: Sequence[str]) -> dict[str, list[str] | None]:
        """Ignore-attribute values along each selector's ancestor chain."""
        unique = [s for s in dict.fromkeys(selectors) if s.strip()]
        if not unique:
            return {}
        chains = await self.page.evaluate(
            scripts.COLLECT_IGNORE_CHAINS,
            {"attribute": self.attribute, "selectors": unique},
        )
        return dict(zip(unique, chains))

    async def partition(
        self, rule_id: str, messages: Sequence[LintMessage]
    ) -> tuple[list[LintMessage], list[LintMessage]]:
        """Return (reported, suppressed) for one rule's messages."""
        chains = await self.ignore_chains([m.location.element.selector for m in messages])

        reported: list[LintMessage] = []
        suppressed: list[LintMessage] = []
        for message in messages:
            if is_suppressed(chains.get(message.location.element.selector), rule_id):
                suppressed.append(message)
            else:
                reported.append(message)
        return reported, suppressed
