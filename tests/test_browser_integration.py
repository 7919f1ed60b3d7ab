"""End-to-end runs against a real Chromium (skipped when it cannot launch)."""

from __future__ import annotations

import pytest

from viewlint import ViewLint, define_plugin, define_rule, define_view_from_html
from viewlint.engine.scope import SelectorScope
from viewlint.types import Target

pytestmark = pytest.mark.browser

HTML = """
<!doctype html>
<html>
  <body>
    <section class="card" id="first"><p class="label">One</p></section>
    <section class="card"><p class="label">Two</p></section>
    <section class="card" data-viewlint-ignore="local/cards"><p class="label">Three</p></section>
    <footer><p class="label">Footer</p></footer>
  </body>
</html>
"""

REPORT_CARDS = """({ report, scope }) => {
  for (const el of scope.queryAll('.card')) {
    report({ message: 'card', element: el })
  }
}"""

REMOVE_CARDS = """({ scope }) => {
  for (const el of scope.queryAll('.card')) el.remove()
}"""


@define_rule(severity="error")
async def cards(context):
    await context.evaluate(REPORT_CARDS)


@define_rule(severity="warn")
async def labels(context):
    count = await context.scope.locator(".label").count()
    if count:
        context.report({"message": f"{count} labels", "element": context.page.locator("#first")})


@define_rule(has_side_effects=True)
async def destroy(context):
    await context.evaluate(REMOVE_CARDS)


def _linter(*rules: str) -> ViewLint:
    plugin = define_plugin({"cards": cards, "labels": labels, "destroy": destroy})
    return ViewLint(
        use_config_file=False,
        base_config={"plugins": {"local": plugin}, "rules": {name: "inherit" for name in rules}},
    )


@pytest.mark.asyncio
async def test_page_reports_and_suppression(chromium) -> None:
    view = define_view_from_html(HTML, name="cards-page")
    [result] = await _linter("cards").lint_targets([Target(view=view)])

    assert result.fatal_error is None
    assert result.error_count == 2
    assert len(result.suppressed_messages) == 1
    assert result.messages[0].location.element.id == "first"
    assert result.messages[0].location.element.selector == "#first"


@pytest.mark.asyncio
async def test_scope_limits_host_locators(chromium) -> None:
    view = define_view_from_html(HTML)
    target = Target(view=view, scope=SelectorScope(".card"))
    [result] = await _linter("labels").lint_targets([target])

    assert [m.message for m in result.messages] == ["3 labels"]


@pytest.mark.asyncio
async def test_reset_after_side_effects(chromium) -> None:
    view = define_view_from_html(HTML)
    # Rules run in plugin registration order: destroy first, then cards on a fresh page.
    plugin = define_plugin({"destroy": destroy, "cards": cards})
    linter = ViewLint(
        use_config_file=False,
        base_config={"plugins": {"local": plugin}, "rules": {"destroy": "inherit", "cards": "inherit"}},
    )
    [result] = await linter.lint_targets([Target(view=view)])
    assert result.error_count == 2
