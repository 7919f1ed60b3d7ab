"""
Lint orchestration: targets, rule sequencing, side-effect isolation, aggregation.

Targets run concurrently, each owning its page. Within a target rules run
strictly in registration order against one page; a side-effecting rule
forces a view reset and a fresh scope before the next rule.

A rule that raises, or a view that fails to open or reset, aborts its
target only; the target's result records the failure and sibling targets
are unaffected.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any, Iterable

from playwright.async_api import Error as PlaywrightError

from ..config.layers import merge_option_layers
from ..config.resolve import ResolvedConfiguration
from ..errors import (
    EvaluationProtocolError,
    RuleExecutionError,
    ScopeResolutionError,
    ViewLintError,
    ViewSetupError,
)
from ..types import (
    LintLocation,
    LintMessage,
    LintRelation,
    LintResult,
    NormalizedRuleConfig,
    RuleDefinition,
    Target,
    ViewInstance,
    ViolationReport,
)
from . import scripts
from .bridge import EvaluationBridge
from .scope import NodeScope, ResolvedScope, ScopeStabilizer
from .suppression import SuppressionResolver

if TYPE_CHECKING:
    from playwright.async_api import Locator, Page

logger = logging.getLogger(__name__)


class RuleContext:
    """What a rule's ``run`` receives."""

    def __init__(
        self,
        *,
        rule_id: str,
        page: Page,
        options: tuple[Any, ...],
        scope: ResolvedScope,
        bridge: EvaluationBridge,
        buffer: list[ViolationReport],
    ):
        self.rule_id = rule_id
        self.page = page
        self.options = options
        self._resolved_scope = scope
        self._bridge = bridge
        self._buffer = buffer

    @property
    def url(self) -> str:
        return self.page.url

    @property
    def scope(self) -> NodeScope:
        return self._resolved_scope.node_scope

    def report(self, violation: ViolationReport | dict[str, Any]) -> None:
        """Report a violation whose location is known host-side."""
        self._buffer.append(ViolationReport.from_value(violation))

    async def evaluate(self, fn: str, args: Any = None) -> Any:
        """Run JavaScript ``fn`` in the page with ``{report, scope, args}`` injected."""
        return await self._bridge.evaluate(fn, args, scope=self._resolved_scope)


class LintOrchestrator:
    """Runs the enabled rules of a ResolvedConfiguration against targets."""

    def __init__(self, resolved: ResolvedConfiguration, *, max_concurrency: int | None = None):
        self.resolved = resolved
        self.max_concurrency = max_concurrency

    async def lint_targets(self, targets: Iterable[Target]) -> list[LintResult]:
        """Lint targets concurrently; results keep the input order."""
        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        async def run_one(target: Target) -> LintResult:
            if semaphore is None:
                return await self.lint_target(target)
            async with semaphore:
                return await self.lint_target(target)

        # Every target settles before an escaping error is raised.
        outcomes = await asyncio.gather(*(run_one(t) for t in targets), return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        return list(outcomes)

    async def lint_target(self, target: Target) -> LintResult:
        opts = merge_option_layers(target.options)
        result = LintResult(target_id=target.target_id, url="")

        logger.debug("setting up view for target %s", result.target_id)
        try:
            instance = await target.view.setup(opts)
        except ViewLintError:
            raise
        except Exception as e:
            error = ViewSetupError(result.target_id, e)
            logger.error("Target %s aborted: %s", result.target_id, error)
            result.fatal_error = str(error)
            result.recount()
            return result

        try:
            await self._run_rules(target, opts, instance, result)
        except (RuleExecutionError, ScopeResolutionError, ViewSetupError) as e:
            logger.error("Target %s aborted: %s", result.target_id, e)
            result.fatal_error = str(e)
        finally:
            result.url = instance.page.url
            await instance.close()

        result.recount()
        return result

    async def _run_rules(
        self,
        target: Target,
        opts: dict[str, Any],
        instance: ViewInstance,
        result: LintResult,
    ) -> None:
        page = instance.page
        bridge = EvaluationBridge(page)
        stabilizer = ScopeStabilizer(page, opts)
        suppression = SuppressionResolver(page)

        await bridge.prepare()
        scope: ResolvedScope | None = await stabilizer.resolve(target.scope)

        enabled = self.resolved.enabled_rule_ids()
        try:
            for index, rule_id in enumerate(enabled):
                rule = self.resolved.rule_registry[rule_id]
                config = self.resolved.rules[rule_id]

                messages = await self._run_rule(rule_id, rule, config, page, bridge, scope)
                reported, suppressed = await suppression.partition(rule_id, messages)
                result.messages.extend(reported)
                result.suppressed_messages.extend(suppressed)

                if rule.meta.has_side_effects and index < len(enabled) - 1:
                    logger.debug("resetting view after side-effecting rule %s", rule_id)
                    await scope.dispose()
                    scope = None
                    try:
                        await instance.reset()
                    except ViewLintError:
                        raise
                    except Exception as e:
                        raise ViewSetupError(target.target_id, e) from e
                    bridge.invalidate()
                    await bridge.prepare()
                    scope = await stabilizer.resolve(target.scope)

            bridge.finish()
        finally:
            if scope is not None:
                await scope.dispose()

    async def _run_rule(
        self,
        rule_id: str,
        rule: RuleDefinition,
        config: NormalizedRuleConfig,
        page: Page,
        bridge: EvaluationBridge,
        scope: ResolvedScope,
    ) -> list[LintMessage]:
        if config.severity == "off":
            raise EvaluationProtocolError(f"Rule '{rule_id}' is disabled but was scheduled")

        scroll = await page.evaluate(scripts.SCROLL_POSITION)
        buffer = bridge.activate()
        context = RuleContext(
            rule_id=rule_id,
            page=page,
            options=config.options,
            scope=scope,
            bridge=bridge,
            buffer=buffer,
        )

        logger.debug("running rule %s", rule_id)
        try:
            outcome = rule.run(context)
            if inspect.isawaitable(outcome):
                await outcome
        except EvaluationProtocolError:
            raise
        except Exception as e:
            raise RuleExecutionError(rule_id, e) from e
        finally:
            bridge.deactivate()

        await page.evaluate(scripts.RESTORE_SCROLL, scroll)

        messages: list[LintMessage] = []
        for violation in buffer:
            location = await self._locate(bridge, rule_id, violation.location, violation.element)
            relations = []
            for relation in violation.relations:
                relations.append(
                    LintRelation(
                        description=relation.description,
                        location=await self._locate(bridge, rule_id, relation.location, relation.element),
                    )
                )
            messages.append(
                LintMessage(
                    rule_id=rule_id,
                    severity=config.severity,  # type: ignore[arg-type]
                    message=violation.message,
                    location=location,
                    relations=tuple(relations),
                )
            )

        logger.debug("rule %s reported %d violation(s)", rule_id, len(messages))
        return messages

    async def _locate(
        self,
        bridge: EvaluationBridge,
        rule_id: str,
        location: LintLocation | None,
        element: Locator | None,
    ) -> LintLocation:
        if location is not None:
            return location
        try:
            return await bridge.describe(element)  # type: ignore[arg-type]
        except PlaywrightError as e:
            raise RuleExecutionError(rule_id, e) from e
