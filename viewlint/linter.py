"""
ViewLint facade.

Loads the nearest config file, resolves configuration once (lazily) and
drives the orchestrator.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

from .config.loader import find_config_file, load_config_file
from .config.resolve import ResolvedConfiguration, resolve_configuration
from .engine.orchestrator import LintOrchestrator
from .helpers import to_list
from .targets import build_targets
from .types import LintResult, Plugin, Target

logger = logging.getLogger(__name__)


class ViewLint:
    """Programmatic entry point.

    Config precedence, lowest first: ``base_config``, the config file
    (``override_config_file`` or the nearest ``viewlint_config.py`` from
    ``cwd``), ``override_config``.
    """

    def __init__(
        self,
        *,
        base_config: Any = None,
        override_config: Any = None,
        override_config_file: str | Path | None = None,
        plugins: Mapping[str, Plugin] | None = None,
        cwd: str | Path | None = None,
        use_config_file: bool = True,
        max_concurrency: int | None = None,
    ):
        self.base_config = base_config
        self.override_config = override_config
        self.override_config_file = Path(override_config_file) if override_config_file else None
        self.plugins = dict(plugins or {})
        self.cwd = Path(cwd) if cwd else Path.cwd()
        self.use_config_file = use_config_file
        self.max_concurrency = max_concurrency
        self._resolved: ResolvedConfiguration | None = None
        self._orchestrator: LintOrchestrator | None = None

    def config_file(self) -> Path | None:
        if self.override_config_file is not None:
            return (self.cwd / self.override_config_file).resolve()
        if not self.use_config_file:
            return None
        return find_config_file(self.cwd)

    @property
    def resolved(self) -> ResolvedConfiguration:
        """The resolved configuration (resolved on first access)."""
        if self._resolved is None:
            path = self.config_file()
            file_config: list[Any] = []
            if path is not None:
                logger.debug("loading config file %s", path)
                file_config = to_list(load_config_file(path))

            self._resolved = resolve_configuration(
                base_config=[*to_list(self.base_config), *file_config],
                override_config=self.override_config,
                plugins=self.plugins,
            )
        return self._resolved

    @property
    def orchestrator(self) -> LintOrchestrator:
        if self._orchestrator is None:
            self._orchestrator = LintOrchestrator(self.resolved, max_concurrency=self.max_concurrency)
        return self._orchestrator

    def build_targets(
        self,
        urls: Sequence[str] = (),
        *,
        view: str | None = None,
        options: Sequence[str] = (),
        scopes: Sequence[str] = (),
        selectors: Sequence[str] = (),
    ) -> list[Target]:
        return build_targets(
            self.resolved,
            urls=urls,
            view=view,
            options=options,
            scopes=scopes,
            selectors=selectors,
        )

    async def lint_targets(self, targets: Sequence[Target]) -> list[LintResult]:
        return await self.orchestrator.lint_targets(targets)

    async def lint_urls(self, urls: str | Sequence[str]) -> list[LintResult]:
        return await self.lint_targets(self.build_targets(to_list(urls)))  # type: ignore[arg-type]
