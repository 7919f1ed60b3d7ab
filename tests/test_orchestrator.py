from __future__ import annotations

import asyncio
from typing import Any, Callable

import pytest
from playwright.async_api import Error as PlaywrightError

from fakes import FakePage, FakeView, cards_dom
from viewlint.engine import scripts
from viewlint.engine.orchestrator import LintOrchestrator, RuleContext
from viewlint.engine.scope import SelectorScope
from viewlint.errors import EvaluationProtocolError
from viewlint.types import RuleDefinition, RuleMeta, Target, ViewInstance

REPORT_CARDS = "({ report, scope }) => { for (const el of scope.queryAll('.card')) report({ message: 'card', element: el }) }"
REMOVE_CARD = "({ scope }) => scope.query('.card').remove()"


def _report_cards(report, scope, args) -> None:
    for el in scope.query_all(".card"):
        report({"message": "card", "element": el})


def _remove_card(report, scope, args) -> None:
    card = scope.query(".card")
    card.parent.children.remove(card)


class RecordingView(FakeView):
    """FakeView that registers page-side rule functions on every page."""

    def __init__(self, build, rule_scripts: dict[str, Callable[..., Any]] | None = None, **kwargs):
        super().__init__(build, **kwargs)
        self.rule_scripts = rule_scripts or {}

    async def setup(self, opts=None):
        instance = await super().setup(opts)
        for source, fn in self.rule_scripts.items():
            instance.page.register_rule_script(source, fn)
        return instance


def _page_rule(source: str = REPORT_CARDS, **meta) -> RuleDefinition:
    async def run(context: RuleContext) -> None:
        await context.evaluate(source)

    return RuleDefinition(run=run, meta=RuleMeta(**meta))


# -----------------------------------------------------------------------------
# Aggregation
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_one_report_per_root_counts_as_errors(resolve_rules) -> None:
    view = RecordingView(cards_dom(2), {REPORT_CARDS: _report_cards}, name="cards")
    resolved = resolve_rules({"cards": _page_rule()})

    [result] = await LintOrchestrator(resolved).lint_targets([Target(view=view, scope=SelectorScope(".card"))])

    assert result.target_id == "cards"
    assert result.error_count == 2
    assert result.warning_count == 0
    assert [m.rule_id for m in result.messages] == ["test/cards", "test/cards"]
    assert {m.location.element.id for m in result.messages} == {"card-0", "card-1"}
    assert result.fatal_error is None


@pytest.mark.asyncio
async def test_severity_is_stamped_from_config(resolve_rules) -> None:
    view = RecordingView(cards_dom(1), {REPORT_CARDS: _report_cards})
    resolved = resolve_rules({"cards": _page_rule()}, {"cards": "info"})

    [result] = await LintOrchestrator(resolved).lint_targets([Target(view=view)])

    assert [m.severity for m in result.messages] == ["info"]
    assert result.info_count == 1
    assert result.recommend_count == 1
    assert result.error_count == 0


@pytest.mark.asyncio
async def test_disabled_rules_do_not_run(resolve_rules) -> None:
    calls: list[str] = []

    def run(context: RuleContext) -> None:
        calls.append(context.rule_id)

    resolved = resolve_rules({"a": RuleDefinition(run=run), "b": RuleDefinition(run=run)}, {"a": "off", "b": "warn"})
    await LintOrchestrator(resolved).lint_targets([Target(view=FakeView(cards_dom(1)))])

    assert calls == ["test/b"]


@pytest.mark.asyncio
async def test_host_side_reports_are_described(resolve_rules) -> None:
    def run(context: RuleContext) -> None:
        context.report({"message": "label", "element": context.page.locator("#card-0")})
        context.report(
            {
                "message": "pair",
                "element": context.page.locator("#card-1"),
                "relations": [{"description": "near", "element": context.page.locator("#card-0")}],
            }
        )

    resolved = resolve_rules({"host": RuleDefinition(run=run, meta=RuleMeta(severity="warn"))})
    [result] = await LintOrchestrator(resolved).lint_targets([Target(view=FakeView(cards_dom(2)))])

    assert result.warning_count == 2
    first, second = result.messages
    assert first.location.element.id == "card-0"
    assert second.relations[0].description == "near"
    assert second.relations[0].location.element.id == "card-0"


@pytest.mark.asyncio
async def test_options_reach_the_rule(resolve_rules) -> None:
    seen: list[Any] = []

    def run(context: RuleContext) -> None:
        seen.append(context.options)
        seen.append(context.url)

    rule = RuleDefinition(run=run, meta=RuleMeta(schema=dict[str, int], default_options=({"limit": 1},)))
    resolved = resolve_rules({"opts": rule}, {"opts": ["warn", {"limit": 4}]})
    target = Target(view=FakeView(cards_dom(1)), options=[{"context": {"base_url": "https://site.test/"}}])

    await LintOrchestrator(resolved).lint_targets([target])

    assert seen == [({"limit": 4},), "https://site.test/"]


# -----------------------------------------------------------------------------
# Side effects
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_side_effecting_rule_resets_before_next_rule(resolve_rules) -> None:
    view = RecordingView(cards_dom(2), {REMOVE_CARD: _remove_card, REPORT_CARDS: _report_cards})
    resolved = resolve_rules(
        {
            "mutate": _page_rule(REMOVE_CARD, has_side_effects=True),
            "cards": _page_rule(),
        }
    )

    [result] = await LintOrchestrator(resolved).lint_targets([Target(view=view, scope=SelectorScope(".card"))])

    # The second rule sees both cards again.
    assert result.error_count == 2
    assert view.resets == 1


@pytest.mark.asyncio
async def test_no_reset_after_last_rule(resolve_rules) -> None:
    view = RecordingView(cards_dom(2), {REMOVE_CARD: _remove_card, REPORT_CARDS: _report_cards})
    resolved = resolve_rules(
        {
            "cards": _page_rule(),
            "mutate": _page_rule(REMOVE_CARD, has_side_effects=True),
        }
    )

    [result] = await LintOrchestrator(resolved).lint_targets([Target(view=view, scope=SelectorScope(".card"))])

    assert result.error_count == 2
    assert view.resets == 0


@pytest.mark.asyncio
async def test_scroll_position_restored_after_each_rule(resolve_rules) -> None:
    pages: list[FakePage] = []

    def scroll(context: RuleContext) -> None:
        pages.append(context.page)
        context.page.scroll = {"x": 0, "y": 900}

    view = FakeView(cards_dom(1))
    resolved = resolve_rules({"scroll": RuleDefinition(run=scroll)})
    await LintOrchestrator(resolved).lint_targets([Target(view=view)])

    assert pages[0].scroll == {"x": 0, "y": 0}


# -----------------------------------------------------------------------------
# Suppression
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_suppressed_messages_are_routed_and_not_counted(resolve_rules) -> None:
    view = RecordingView(cards_dom(2, ignore={1: "test/cards"}), {REPORT_CARDS: _report_cards})
    resolved = resolve_rules({"cards": _page_rule()})

    [result] = await LintOrchestrator(resolved).lint_targets([Target(view=view)])

    assert result.error_count == 1
    assert [m.location.element.id for m in result.messages] == ["card-0"]
    assert [m.location.element.id for m in result.suppressed_messages] == ["card-1"]
    assert result.to_dict()["suppressedMessages"][0]["ruleId"] == "test/cards"


# -----------------------------------------------------------------------------
# Failures
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_rule_failure_aborts_only_its_target(resolve_rules) -> None:
    def explode(context: RuleContext) -> None:
        if "broken" in context.url:
            raise ValueError("bad layout math")

    after: list[str] = []
    resolved = resolve_rules(
        {
            "explode": RuleDefinition(run=explode),
            "after": RuleDefinition(run=lambda context: after.append(context.url)),
        }
    )
    broken = FakeView(cards_dom(1))
    healthy = FakeView(cards_dom(1))
    targets = [
        Target(view=broken, options=[{"context": {"base_url": "https://broken.test/"}}], id="broken"),
        Target(view=healthy, options=[{"context": {"base_url": "https://ok.test/"}}], id="ok"),
    ]

    broken_result, ok_result = await LintOrchestrator(resolved).lint_targets(targets)

    assert "Rule 'test/explode' failed: bad layout math" in broken_result.fatal_error
    assert ok_result.fatal_error is None
    assert after == ["https://ok.test/"]
    assert broken.pages[0].closed
    assert healthy.pages[0].closed


@pytest.mark.asyncio
async def test_scope_without_matches_aborts_target(resolve_rules) -> None:
    view = FakeView(cards_dom(1))
    resolved = resolve_rules({"noop": RuleDefinition(run=lambda context: None)})

    [result] = await LintOrchestrator(resolved).lint_targets([Target(view=view, scope=SelectorScope(".missing"))])

    assert "matched no elements" in result.fatal_error
    assert view.pages[0].closed


@pytest.mark.asyncio
async def test_protocol_errors_propagate_and_close_page(resolve_rules) -> None:
    def double_report(context: RuleContext) -> None:
        context._bridge.activate()

    view = FakeView(cards_dom(1))
    resolved = resolve_rules({"bad": RuleDefinition(run=double_report)})

    with pytest.raises(EvaluationProtocolError):
        await LintOrchestrator(resolved).lint_targets([Target(view=view)])
    assert view.pages[0].closed


@pytest.mark.asyncio
async def test_ambiguous_host_locator_is_rule_failure(resolve_rules) -> None:
    def run(context: RuleContext) -> None:
        context.report({"message": "many", "element": context.page.locator(".card")})

    resolved = resolve_rules({"many": RuleDefinition(run=run)})
    [result] = await LintOrchestrator(resolved).lint_targets([Target(view=FakeView(cards_dom(2)))])

    assert result.fatal_error is not None
    assert "strict mode violation" in result.fatal_error


# -----------------------------------------------------------------------------
# Concurrency
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_max_concurrency_limits_open_pages(resolve_rules) -> None:
    open_now = 0
    peak = 0

    async def slow(context: RuleContext) -> None:
        nonlocal open_now, peak
        open_now += 1
        peak = max(peak, open_now)
        await asyncio.sleep(0.01)
        open_now -= 1

    resolved = resolve_rules({"slow": RuleDefinition(run=slow)})
    targets = [Target(view=FakeView(cards_dom(1)), id=str(i)) for i in range(4)]

    results = await LintOrchestrator(resolved, max_concurrency=2).lint_targets(targets)

    assert [r.target_id for r in results] == ["0", "1", "2", "3"]
    assert peak == 2



# -----------------------------------------------------------------------------
# Late reports and view failures
# -----------------------------------------------------------------------------


STASH_REPORT = "({ report }) => { window.__late = report }"


class LateReportView(RecordingView):
    """Fires a stashed page-side ``report`` once the rule has returned."""

    def __init__(self, build, **kwargs):
        self.stashed: list[Callable[[dict[str, Any]], None]] = []
        super().__init__(build, {STASH_REPORT: lambda report, scope, args: self.stashed.append(report)}, **kwargs)

    async def setup(self, opts=None):
        instance = await super().setup(opts)
        page = instance.page
        evaluate = page.evaluate

        async def evaluate_then_fire(expression, arg=None):
            result = await evaluate(expression, arg)
            if expression is scripts.RESTORE_SCROLL:
                for report in self.stashed:
                    try:
                        report({"message": "late", "element": page.root})
                    except PlaywrightError:
                        # The page sees a rejected promise.
                        pass
            return result

        page.evaluate = evaluate_then_fire
        return instance


@pytest.mark.asyncio
async def test_report_after_last_rule_is_not_dropped(resolve_rules) -> None:
    view = LateReportView(cards_dom(1))
    resolved = resolve_rules({"stash": _page_rule(STASH_REPORT)})

    with pytest.raises(EvaluationProtocolError, match="no active rule buffer"):
        await LintOrchestrator(resolved).lint_targets([Target(view=view)])
    assert view.pages[0].closed


class BrokenView(FakeView):
    async def setup(self, opts=None):
        raise RuntimeError("net::ERR_NAME_NOT_RESOLVED")


@pytest.mark.asyncio
async def test_view_setup_failure_aborts_only_its_target(resolve_rules) -> None:
    seen: list[str] = []
    resolved = resolve_rules({"seen": RuleDefinition(run=lambda context: seen.append(context.url))})
    healthy = FakeView(cards_dom(1))
    targets = [
        Target(view=BrokenView(cards_dom(1)), id="broken"),
        Target(view=healthy, options=[{"context": {"base_url": "https://ok.test/"}}], id="ok"),
    ]

    broken_result, ok_result = await LintOrchestrator(resolved).lint_targets(targets)

    assert broken_result.fatal_error == "View for target 'broken' failed: net::ERR_NAME_NOT_RESOLVED"
    assert broken_result.messages == []
    assert ok_result.fatal_error is None
    assert seen == ["https://ok.test/"]
    assert healthy.pages[0].closed


class ResetFailsView(FakeView):
    async def setup(self, opts=None):
        instance = await super().setup(opts)

        async def reset() -> None:
            raise RuntimeError("navigation timeout")

        return ViewInstance(page=instance.page, reset=reset, close=instance.close)


@pytest.mark.asyncio
async def test_view_reset_failure_aborts_target(resolve_rules) -> None:
    view = ResetFailsView(cards_dom(1))
    resolved = resolve_rules(
        {
            "mutate": RuleDefinition(run=lambda context: None, meta=RuleMeta(has_side_effects=True)),
            "after": RuleDefinition(run=lambda context: None),
        }
    )

    [result] = await LintOrchestrator(resolved).lint_targets([Target(view=view, id="resets")])

    assert result.fatal_error == "View for target 'resets' failed: navigation timeout"
    assert view.pages[0].closed


@pytest.mark.asyncio
async def test_protocol_error_waits_for_sibling_targets(resolve_rules) -> None:
    def double_report(context: RuleContext) -> None:
        if "bad" in context.url:
            context._bridge.activate()

    healthy = FakeView(cards_dom(1))
    bad = FakeView(cards_dom(1))
    resolved = resolve_rules({"bad": RuleDefinition(run=double_report)})
    targets = [
        Target(view=bad, options=[{"context": {"base_url": "https://bad.test/"}}]),
        Target(view=healthy, options=[{"context": {"base_url": "https://ok.test/"}}]),
    ]

    with pytest.raises(EvaluationProtocolError):
        await LintOrchestrator(resolved).lint_targets(targets)
    assert bad.pages[0].closed
    assert healthy.pages[0].closed
