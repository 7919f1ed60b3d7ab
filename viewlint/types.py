"""Core data types shared by the config resolver and the lint engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal, Mapping, Protocol, Sequence, Union

if TYPE_CHECKING:
    from playwright.async_api import Locator, Page


Severity = Literal["off", "info", "warn", "error"]
ReportSeverity = Literal["info", "warn", "error"]
SeverityInput = Literal["inherit", "off", "info", "warn", "error"]

SEVERITIES: tuple[str, ...] = ("off", "info", "warn", "error")
REPORT_SEVERITIES: tuple[str, ...] = ("info", "warn", "error")
SEVERITY_INPUTS: tuple[str, ...] = ("inherit", *SEVERITIES)

# Option layer passed to View.setup; keys: context, launch, meta, args.
SetupOpts = dict[str, Any]


# -----------------------------------------------------------------------------
# Locations and messages
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ElementDescriptor:
    selector: str
    tag_name: str
    id: str = ""
    classes: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "selector": self.selector,
            "tagName": self.tag_name,
            "id": self.id,
            "classes": list(self.classes),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ElementDescriptor:
        return cls(
            selector=str(data.get("selector", "")),
            tag_name=str(data.get("tagName", "")),
            id=str(data.get("id", "") or ""),
            classes=tuple(str(c) for c in data.get("classes", []) or []),
        )


@dataclass(frozen=True)
class LintLocation:
    element: ElementDescriptor

    def to_dict(self) -> dict[str, Any]:
        return {"element": self.element.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LintLocation:
        return cls(element=ElementDescriptor.from_dict(data.get("element", {}) or {}))


@dataclass(frozen=True)
class LintRelation:
    description: str
    location: LintLocation

    def to_dict(self) -> dict[str, Any]:
        return {"description": self.description, "location": self.location.to_dict()}


@dataclass(frozen=True)
class LintMessage:
    """A single reported defect, stamped with its rule and resolved severity."""

    rule_id: str
    severity: ReportSeverity
    message: str
    location: LintLocation
    relations: tuple[LintRelation, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "location": self.location.to_dict(),
            "relations": [r.to_dict() for r in self.relations],
            "severity": self.severity,
            "message": self.message,
        }


@dataclass
class LintResult:
    """Per-target aggregate of lint messages."""

    target_id: str
    url: str
    messages: list[LintMessage] = field(default_factory=list)
    suppressed_messages: list[LintMessage] = field(default_factory=list)
    error_count: int = 0
    warning_count: int = 0
    info_count: int = 0
    recommend_count: int = 0
    fatal_error: str | None = None

    def recount(self) -> None:
        """Recompute severity counts from unsuppressed messages."""
        self.error_count = sum(1 for m in self.messages if m.severity == "error")
        self.warning_count = sum(1 for m in self.messages if m.severity == "warn")
        self.info_count = sum(1 for m in self.messages if m.severity == "info")
        self.recommend_count = self.info_count

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "targetId": self.target_id,
            "url": self.url,
            "messages": [m.to_dict() for m in self.messages],
            "suppressedMessages": [m.to_dict() for m in self.suppressed_messages],
            "errorCount": self.error_count,
            "warningCount": self.warning_count,
            "infoCount": self.info_count,
            "recommendCount": self.recommend_count,
        }
        if self.fatal_error is not None:
            data["fatalError"] = self.fatal_error
        return data


# -----------------------------------------------------------------------------
# Violation reports (rule author API)
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ViolationRelation:
    description: str
    element: Locator | None = None
    location: LintLocation | None = None

    def __post_init__(self) -> None:
        if (self.element is None) == (self.location is None):
            raise ValueError("A relation needs exactly one of 'element' or 'location'")


@dataclass(frozen=True)
class ViolationReport:
    """A violation as reported by a rule, before rule id and severity are stamped.

    Host-side reports point at a Playwright locator (``element``) or carry an
    already-resolved ``location``.
    """

    message: str
    element: Locator | None = None
    location: LintLocation | None = None
    relations: tuple[ViolationRelation, ...] = ()

    def __post_init__(self) -> None:
        if (self.element is None) == (self.location is None):
            raise ValueError("A violation needs exactly one of 'element' or 'location'")

    @classmethod
    def from_value(cls, value: ViolationReport | Mapping[str, Any]) -> ViolationReport:
        """Accept a ViolationReport or a plain mapping with the same keys."""
        if isinstance(value, ViolationReport):
            return value
        if not isinstance(value, Mapping):
            raise TypeError(f"Expected a ViolationReport or mapping, got {type(value).__name__}")

        location = value.get("location")
        if isinstance(location, Mapping):
            location = LintLocation.from_dict(location)

        relations: list[ViolationRelation] = []
        for raw in value.get("relations") or []:
            if isinstance(raw, ViolationRelation):
                relations.append(raw)
                continue
            rel_location = raw.get("location")
            if isinstance(rel_location, Mapping):
                rel_location = LintLocation.from_dict(rel_location)
            relations.append(
                ViolationRelation(
                    description=str(raw.get("description", "")),
                    element=raw.get("element"),
                    location=rel_location,
                )
            )

        return cls(
            message=str(value.get("message", "")),
            element=value.get("element"),
            location=location,
            relations=tuple(relations),
        )


# -----------------------------------------------------------------------------
# Rules and plugins
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleDocs:
    description: str | None = None
    recommended: bool = False


@dataclass(frozen=True)
class RuleMeta:
    severity: ReportSeverity | None = None
    # A pydantic-validatable type, or a sequence of them (positional options).
    schema: Any = None
    default_options: tuple[Any, ...] = ()
    has_side_effects: bool = False
    docs: RuleDocs | None = None


RuleRun = Callable[[Any], Union[Awaitable[None], None]]


@dataclass(frozen=True)
class RuleDefinition:
    run: RuleRun
    meta: RuleMeta = field(default_factory=RuleMeta)


@dataclass(frozen=True)
class PluginMeta:
    name: str | None = None
    version: str | None = None
    namespace: str | None = None


@dataclass(eq=False)
class Plugin:
    """A named bundle of rules and reusable configs.

    Compared by identity: the resolver references plugins, never copies them.
    """

    rules: dict[str, RuleDefinition] = field(default_factory=dict)
    configs: dict[str, Any] = field(default_factory=dict)
    meta: PluginMeta = field(default_factory=PluginMeta)


@dataclass(frozen=True)
class NormalizedRuleConfig:
    severity: Severity
    options: tuple[Any, ...] = ()


# -----------------------------------------------------------------------------
# Views, scopes and targets (external capabilities)
# -----------------------------------------------------------------------------


@dataclass
class ViewInstance:
    page: Page
    reset: Callable[[], Awaitable[None]]
    close: Callable[[], Awaitable[None]]


class View(Protocol):
    name: str | None

    async def setup(self, opts: SetupOpts | None = None) -> ViewInstance: ...


class ScopeDescriptor(Protocol):
    name: str | None

    def get_locator(self, *, page: Page, opts: SetupOpts) -> Any:
        """Return a Locator, a list of Locators, or an awaitable of either."""
        ...


TargetKind = Literal["url", "view"]


@dataclass
class Target:
    """One lintable unit: a view, its option layers, and an optional scope."""

    view: View
    options: Sequence[SetupOpts] = ()
    scope: Sequence[ScopeDescriptor] | ScopeDescriptor | None = None
    kind: TargetKind = "view"
    id: str | None = None

    @property
    def target_id(self) -> str:
        if self.id:
            return self.id
        return getattr(self.view, "name", None) or "default"
