"""Lint command implementation."""

import asyncio
import io
import json
from collections import defaultdict
from dataclasses import replace
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..errors import ViewLintError
from ..linter import ViewLint
from ..types import ElementDescriptor, LintMessage, LintResult

SEVERITY_ORDER = {"error": 0, "warn": 1, "info": 2}
SEVERITY_STYLE = {"error": "bold red", "warn": "yellow", "info": "blue"}


def run_lint(
    urls: list[str],
    config_file: Path | None = None,
    view: str | None = None,
    options: tuple[str, ...] = (),
    scopes: tuple[str, ...] = (),
    selectors: tuple[str, ...] = (),
    quiet: bool = False,
    max_warnings: int = -1,
    output_json: bool = False,
    output_file: Path | None = None,
    max_concurrency: int | None = None,
) -> int:
    """Lint URLs (or the configured view) and print results.

    Args:
        urls: URLs to lint; with none, a single target is built from the view and options
        config_file: Config file to use instead of the discovered viewlint_config.py
        view: Named view from config
        options: Named option layers from config, applied in order
        scopes: Named scopes from config
        selectors: Ad hoc CSS selectors used as extra scope roots
        quiet: Report errors only
        max_warnings: Warning count that triggers a nonzero exit (-1 disables)
        output_json: Output results as JSON instead of human-readable
        output_file: Write the report here instead of stdout
        max_concurrency: Maximum number of targets linted at once

    Returns:
        Exit code (0 = clean, 1 = lint failures, 2 = configuration or runtime failure)
    """
    console = Console(stderr=True)

    linter = ViewLint(override_config_file=config_file, max_concurrency=max_concurrency)
    try:
        targets = linter.build_targets(
            urls,
            view=view,
            options=options,
            scopes=scopes,
            selectors=selectors,
        )
        results = asyncio.run(linter.lint_targets(targets))
    except ViewLintError as e:
        console.print(str(e), style="bold red")
        return 2

    printable = [_quiet(r) for r in results] if quiet else results

    try:
        if output_json:
            _write_output(json.dumps([r.to_dict() for r in printable], indent=2), output_file)
        elif output_file is not None:
            buffer = io.StringIO()
            _print_human_output(Console(file=buffer, width=120, no_color=True), printable)
            _write_output(buffer.getvalue(), output_file)
        else:
            _print_human_output(Console(), printable)
    except ViewLintError as e:
        console.print(str(e), style="bold red")
        return 2

    for result in results:
        if result.fatal_error:
            console.print(f"✗ {result.target_id}: {result.fatal_error}", style="bold red")
    if any(r.fatal_error for r in results):
        return 2

    errors = sum(r.error_count for r in results)
    warnings = sum(r.warning_count for r in results)
    too_many_warnings = max_warnings >= 0 and warnings > max_warnings
    if errors > 0 or too_many_warnings:
        return 1
    return 0


def _quiet(result: LintResult) -> LintResult:
    """Keep only error-level messages."""
    quiet = replace(
        result,
        messages=[m for m in result.messages if m.severity == "error"],
        suppressed_messages=[],
    )
    quiet.recount()
    return quiet


def _write_output(text: str, output_file: Path | None) -> None:
    if output_file is None:
        print(text)
        return
    if output_file.is_dir():
        raise ViewLintError(f"Cannot write to output file path, it is a directory: {output_file}")
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(text, encoding="utf-8")


def _format_element(element: ElementDescriptor) -> str:
    identity = element.tag_name.strip()
    if element.id.strip():
        identity += f"#{element.id.strip()}"
    classes = [c.strip() for c in element.classes if c.strip()][:4]
    if classes:
        identity += "." + ".".join(classes)
    return f"[cyan]{escape(identity)}[/]  [dim](selector: {escape(json.dumps(element.selector.strip()))})[/]"


def _sorted_messages(messages: list[LintMessage]) -> list[LintMessage]:
    return sorted(messages, key=lambda m: (SEVERITY_ORDER.get(m.severity, 99), m.rule_id, m.message))


def _print_human_output(console: Console, results: list[LintResult]) -> None:
    """Print messages grouped by target, then by rule."""
    for result in results:
        console.print()
        header = result.target_id if result.url in ("", result.target_id) else f"{result.target_id} ({result.url})"
        console.print(header, style="bold underline")

        if not result.messages:
            console.print("  ✓ No problems", style="dim green")
            continue

        by_rule: dict[str, list[LintMessage]] = defaultdict(list)
        for message in _sorted_messages(result.messages):
            by_rule[message.rule_id].append(message)

        for rule_id, rule_messages in by_rule.items():
            console.print(f"\n  Rule: {rule_id}", style="bold")
            for m in rule_messages:
                style = SEVERITY_STYLE.get(m.severity, "dim")
                console.print(f"    [{style}]{m.severity.upper()}[/]: {escape(m.message)}", highlight=False)
                console.print(f"      {_format_element(m.location.element)}", highlight=False)
                for relation in m.relations:
                    console.print(
                        f"      [dim]{escape(relation.description)}:[/] {_format_element(relation.location.element)}",
                        highlight=False,
                    )

    console.print()
    table = Table(title="Lint Summary", show_header=True)
    table.add_column("Target", style="cyan")
    table.add_column("Errors", justify="right")
    table.add_column("Warnings", justify="right")
    table.add_column("Info", justify="right")
    table.add_column("Suppressed", justify="right")
    for result in results:
        table.add_row(
            result.target_id,
            str(result.error_count),
            str(result.warning_count),
            str(result.info_count),
            str(len(result.suppressed_messages)),
        )
    console.print(table)

    errors = sum(r.error_count for r in results)
    warnings = sum(r.warning_count for r in results)
    infos = sum(r.info_count for r in results)
    console.print()
    if errors > 0:
        console.print(f"❌ {errors} error(s)", style="bold red")
    if warnings > 0:
        console.print(f"⚠️  {warnings} warning(s)", style="yellow")
    if infos > 0:
        console.print(f"ℹ️  {infos} info(s)", style="dim")
    if errors == 0 and warnings == 0:
        console.print("✅ No errors or warnings", style="bold green")
