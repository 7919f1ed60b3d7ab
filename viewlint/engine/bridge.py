"""
Host/page evaluation bridge.

Runs rule-supplied JavaScript inside the page with ``report`` and ``scope``
injected, and carries violation reports back to the host through an
exposed binding.

Calls are an explicit envelope:

    serialize (args -> payload + reference table)
      -> execute in page (placeholders unboxed to live elements)
      -> deserialize (JSON result)

Page-scoped helper state (selector finder, report adapter) is owned here
with an explicit lifecycle: init scripts are registered once per page, and
the current document is re-primed whenever a main-frame navigation or a
view reset marks it stale.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from playwright.async_api import ElementHandle, JSHandle, Locator
from playwright.async_api import Error as PlaywrightError

from ..errors import EvaluationProtocolError
from ..types import LintLocation, ViolationRelation, ViolationReport
from . import scripts

if TYPE_CHECKING:
    from playwright.async_api import Frame, Page

    from .scope import ResolvedScope

logger = logging.getLogger(__name__)


def report_from_wire(payload: Mapping[str, Any]) -> ViolationReport:
    """Build a ViolationReport from a page-side payload."""
    if not isinstance(payload, Mapping) or "location" not in payload:
        raise EvaluationProtocolError(f"Malformed report payload from page: {payload!r}")

    relations = tuple(
        ViolationRelation(
            description=str(rel.get("description", "")),
            location=LintLocation.from_dict(rel.get("location") or {}),
        )
        for rel in payload.get("relations") or []
    )
    return ViolationReport(
        message=str(payload.get("message", "")),
        location=LintLocation.from_dict(payload["location"]),
        relations=relations,
    )


def _as_protocol_error(error: PlaywrightError) -> EvaluationProtocolError | None:
    message = str(error)
    if scripts.PROTOCOL_ERROR_PREFIX in message:
        return EvaluationProtocolError(message)
    return None


class EvaluationBridge:
    """Per-page evaluation bridge. One buffer is active per rule invocation."""

    def __init__(self, page: Page):
        self.page = page
        self._binding_installed = False
        self._init_scripts_installed = False
        self._stale = True
        self._active: list[ViolationReport] | None = None
        self._protocol_errors: list[EvaluationProtocolError] = []
        page.on("framenavigated", self._on_frame_navigated)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _on_frame_navigated(self, frame: Frame) -> None:
        if frame == self.page.main_frame:
            self._stale = True

    def invalidate(self) -> None:
        """Mark page-side helpers stale (after a view reset)."""
        self._stale = True

    async def prepare(self) -> None:
        """Install the finder and report adapter into the current document."""
        if not self._init_scripts_installed:
            await self.page.add_init_script(script=scripts.FINDER_RUNTIME)
            await self.page.add_init_script(script=scripts.REPORT_ADAPTER)
            self._init_scripts_installed = True

        if self._stale:
            logger.debug("priming page helpers for %s", self.page.url)
            await self.page.evaluate(scripts.FINDER_RUNTIME)
            await self.page.evaluate(scripts.REPORT_ADAPTER)
            self._stale = False

    async def _install_binding(self) -> None:
        if self._binding_installed:
            return
        self._binding_installed = True
        logger.debug("installing report binding %s", scripts.REPORT_BINDING)
        await self.page.expose_binding(scripts.REPORT_BINDING, self._on_report)

    # -------------------------------------------------------------------------
    # Report buffers
    # -------------------------------------------------------------------------

    def _on_report(self, source: Any, payload: Any) -> None:
        # Errors raised here reach the page as a rejection; keep a host-side copy.
        try:
            if self._active is None:
                raise EvaluationProtocolError(
                    f"{scripts.REPORT_BINDING} called with no active rule buffer"
                )
            report = report_from_wire(payload)
        except EvaluationProtocolError as e:
            self._protocol_errors.append(e)
            raise
        self._active.append(report)

    def _raise_protocol_errors(self) -> None:
        if self._protocol_errors:
            error = self._protocol_errors[0]
            self._protocol_errors.clear()
            raise error

    def finish(self) -> None:
        """Raise any protocol error recorded after the last rule buffer closed."""
        self._raise_protocol_errors()

    @property
    def is_active(self) -> bool:
        return self._active is not None

    def activate(self) -> list[ViolationReport]:
        """Start buffering reports for one rule invocation."""
        if self._active is not None:
            raise EvaluationProtocolError("A rule buffer is already active on this page")
        self._raise_protocol_errors()
        self._active = []
        return self._active

    def deactivate(self) -> list[ViolationReport]:
        """Stop buffering; raises any protocol error recorded meanwhile."""
        buffer, self._active = self._active, None
        self._raise_protocol_errors()
        return buffer if buffer is not None else []

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    async def marshal(self, value: Any, refs: list[Any], owned: list[Any]) -> Any:
        """Replace handles (and locators) with reference placeholders.

        Args:
            value: Arguments to send to the page
            refs: Reference table; handles are appended in placeholder order
            owned: Handles created here that the caller must dispose
        """
        if isinstance(value, JSHandle):
            refs.append(value)
            return {scripts.REF_KEY: len(refs) - 1}

        if isinstance(value, Locator):
            handle = await value.element_handle()
            owned.append(handle)
            refs.append(handle)
            return {scripts.REF_KEY: len(refs) - 1}

        if isinstance(value, Mapping):
            out: dict[str, Any] = {}
            for key, item in value.items():
                if not isinstance(key, str):
                    raise TypeError(f"Evaluation argument keys must be strings, got {key!r}")
                out[key] = await self.marshal(item, refs, owned)
            return out

        if isinstance(value, (list, tuple)):
            return [await self.marshal(item, refs, owned) for item in value]

        if value is None or isinstance(value, (str, int, float, bool)):
            return value

        raise TypeError(f"Cannot pass {type(value).__name__} to a page evaluation")

    async def evaluate(self, fn: str, args: Any = None, *, scope: ResolvedScope) -> Any:
        """
        Run ``fn`` (JavaScript function source) in the page.

        The function receives ``{report, scope, args}``; element handles and
        locators inside ``args`` arrive as live elements.

        Raises:
            EvaluationProtocolError: page-side helpers missing, or a report
                arrived with no active buffer
        """
        await self.prepare()
        await self._install_binding()

        refs: list[Any] = []
        owned: list[ElementHandle] = []
        try:
            payload = await self.marshal(args, refs, owned)
            result = await self.page.evaluate(
                scripts.build_invocation(fn),
                {"payload": payload, "refs": refs, "scope": scope.browser_scope},
            )
        except PlaywrightError as e:
            self._raise_protocol_errors()
            protocol_error = _as_protocol_error(e)
            if protocol_error is not None:
                raise protocol_error from e
            raise
        finally:
            for handle in owned:
                await handle.dispose()

        self._raise_protocol_errors()
        return result

    async def describe(self, locator: Locator) -> LintLocation:
        """Location descriptor for a host-side locator (must match one element)."""
        try:
            data = await locator.evaluate(scripts.DESCRIBE_ELEMENT)
        except PlaywrightError as e:
            protocol_error = _as_protocol_error(e)
            if protocol_error is not None:
                raise protocol_error from e
            raise
        return LintLocation.from_dict(data)
