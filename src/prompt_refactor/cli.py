"""CLI interface using typer + rich."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from prompt_refactor.clients.llm_client import LLMClient
from prompt_refactor.config import AppConfig, load_config
from prompt_refactor.errors import ExtractionError
from prompt_refactor.logging.cost_calculator import calculate_cost
from prompt_refactor.logging.models import UsageLog
from prompt_refactor.logging.usage_store import UsageStore
from prompt_refactor.models.refactor import RefactorResult, SelectedAlternatives
from prompt_refactor.pipeline.anchorer import OverlapPolicy
from prompt_refactor.pipeline.extractor import extract_segments
from prompt_refactor.pipeline.prompt_refactorer import PromptRefactorer
from prompt_refactor.pipeline.session import RefactorSession
from prompt_refactor.store.prompt_store import PromptStore

app = typer.Typer(
    name="prompt-refactor",
    help="Rephrase parts of image-generation prompts with LLM suggestions",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s %(levelname)s %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)


def _highlight(result: RefactorResult, selections: SelectedAlternatives) -> Text:
    """Prompt text with segments styled; chosen alternatives shown in place."""
    text = Text()
    cursor = 0
    for seg in result.ordered_segments():
        if seg.start_index < cursor:
            continue  # overlapping segment, already covered
        text.append(result.original_prompt[cursor : seg.start_index])
        alt = seg.find_alternative(selections.get(seg.id, ""))
        if alt is not None:
            text.append(alt.text, style="bold green")
        else:
            text.append(seg.original, style="bold yellow underline")
        cursor = seg.end_index
    text.append(result.original_prompt[cursor:])
    return text


def _segments_table(result: RefactorResult) -> Table:
    table = Table(title="Suggestions")
    table.add_column("#", justify="right")
    table.add_column("Phrase", style="yellow")
    table.add_column("Offsets", style="dim")
    table.add_column("Alternatives")
    for i, seg in enumerate(result.ordered_segments(), 1):
        alts = "\n".join(f"{j}. {alt.text}" for j, alt in enumerate(seg.alternatives, 1))
        table.add_row(str(i), seg.original, f"{seg.start_index}-{seg.end_index}", alts or "-")
    return table


def _build_refactorer(config: AppConfig, llm: LLMClient) -> PromptRefactorer:
    return PromptRefactorer(
        llm,
        model=config.llm.model,
        fallback_models=config.llm.fallback_models,
        attempts_per_model=config.llm.attempts_per_model,
        temperature=config.llm.temperature,
        max_tokens=config.llm.max_tokens,
        overlap_policy=OverlapPolicy(config.extraction.overlap_policy),
    )


def _save_usage(usage: UsageStore, llm: LLMClient, **fields) -> None:
    tokens = llm.get_token_summary()
    usage.record(
        UsageLog(
            input_tokens=tokens["input"],
            output_tokens=tokens["output"],
            cost_usd=calculate_cost(tokens["calls"]),
            **fields,
        )
    )


@app.command()
def new(
    title: str = typer.Argument(help="Prompt title"),
    content: str = typer.Argument(help="Prompt text"),
    tag: list[str] = typer.Option(None, "--tag", "-t", help="Tag (repeatable)"),
) -> None:
    """Store a new prompt (saved as version v1)."""
    config = load_config()
    store = PromptStore(config.store.resolved_db_path)
    prompt = store.create_prompt(title, content, tags=tag or [])
    console.print(f"[green]Created prompt {prompt.id}[/green]")


@app.command()
def refactor(
    text: str = typer.Argument(None, help="Prompt text (omit when using --prompt-id)"),
    prompt_id: str = typer.Option(None, "--prompt-id", "-p", help="Stored prompt to refactor"),
    apply: bool = typer.Option(True, "--apply/--no-apply", help="Pick alternatives interactively"),
) -> None:
    """Ask the model for alternatives to phrases of a prompt."""
    if (text is None) == (prompt_id is None):
        console.print("[red]Pass either a prompt text or --prompt-id.[/red]")
        raise typer.Exit(1)

    config = load_config()
    store = PromptStore(config.store.resolved_db_path)
    usage = UsageStore(config.store.resolved_usage_db_path)

    if prompt_id is not None:
        prompt = store.get_prompt(prompt_id)
        if prompt is None:
            console.print(f"[red]Prompt not found: {prompt_id}[/red]")
            raise typer.Exit(1)
        text = prompt.content

    llm = LLMClient(timeout=config.llm.timeout)
    refactorer = _build_refactorer(config, llm)
    session = RefactorSession(refactorer, store, prompt_id or "", text)

    start = time.monotonic()
    with console.status("Analyzing prompt..."):
        result = asyncio.run(session.start())
    _save_usage(
        usage,
        llm,
        mode="refactor",
        prompt_id=prompt_id,
        model=refactorer.last_model,
        segment_count=len(result.segments) if result else 0,
        attempts_by_model=dict(refactorer.attempts_by_model),
        elapsed_seconds=time.monotonic() - start,
        failure_kind=session.error_kind,
        error_message=session.error,
    )

    if result is None:
        console.print(f"[red]Refactor failed: {escape(session.error or '')}[/red]")
        raise typer.Exit(1)

    console.print(Panel(_highlight(result, {}), title="Prompt"))
    console.print(_segments_table(result))

    if not apply:
        return

    for i, seg in enumerate(result.ordered_segments(), 1):
        choice = typer.prompt(f'[{i}] "{seg.original}" (0 keeps it)', type=int, default=0)
        if 1 <= choice <= len(seg.alternatives):
            session.select(seg.id, seg.alternatives[choice - 1].id)

    modified = session.modified_prompt()
    if modified == text:
        console.print("[yellow]No changes selected.[/yellow]")
        return

    console.print(Panel(_highlight(result, session.selections), title="Modified prompt"))

    if prompt_id is None:
        console.print(modified)
        return

    if not typer.confirm("Save as a new version?", default=True):
        return

    start = time.monotonic()
    version = asyncio.run(session.apply())
    _save_usage(
        usage,
        llm,
        mode="apply",
        prompt_id=prompt_id,
        elapsed_seconds=time.monotonic() - start,
        failure_kind=session.error_kind,
        error_message=session.error,
    )
    if version is None:
        console.print(f"[red]Could not save: {escape(session.error or '')}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Saved {version.version_name} ({version.id})[/green]")


@app.command()
def parse(
    raw_file: Path = typer.Argument(help="File holding a raw model response"),
    prompt: str = typer.Option(..., "--prompt", help="The prompt the response refers to"),
) -> None:
    """Run the extraction pipeline on a saved model response."""
    if not raw_file.exists():
        console.print(f"[red]File not found: {raw_file}[/red]")
        raise typer.Exit(1)

    config = load_config()
    raw = raw_file.read_text(encoding="utf-8")
    try:
        result = extract_segments(
            raw, prompt, overlap_policy=OverlapPolicy(config.extraction.overlap_policy)
        )
    except ExtractionError as e:
        console.print(f"[red]{type(e).__name__}: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print_json(result.model_dump_json())


@app.command()
def history(
    prompt_id: str = typer.Argument(help="Prompt id"),
) -> None:
    """List saved versions of a prompt."""
    config = load_config()
    store = PromptStore(config.store.resolved_db_path)
    prompt = store.get_prompt(prompt_id)
    if prompt is None:
        console.print(f"[red]Prompt not found: {prompt_id}[/red]")
        raise typer.Exit(1)

    table = Table(title=prompt.title)
    table.add_column("Version")
    table.add_column("Created", style="dim")
    table.add_column("Content")
    for version in store.list_versions(prompt_id):
        marker = " *" if version.id == prompt.current_version_id else ""
        table.add_row(
            version.version_name + marker,
            version.created_at.strftime("%Y-%m-%d %H:%M"),
            version.content,
        )
    console.print(table)


@app.command()
def usage(
    recent: int = typer.Option(0, "--recent", "-n", help="Also list the N latest runs"),
) -> None:
    """Show this month's runs, failures by kind and estimated cost."""
    config = load_config()
    store = UsageStore(config.store.resolved_usage_db_path)
    report = store.monthly_report()
    avg = report.avg_segments if report.avg_segments is not None else "-"
    console.print(
        Panel(
            f"Runs: {report.runs} | success {report.success_rate:.0f}%\n"
            f"Tokens: {report.input_tokens} in / {report.output_tokens} out\n"
            f"Avg segments: {avg}\n"
            f"Estimated cost: ${report.cost_usd:.4f}",
            title=f"Usage {report.month}",
        )
    )

    if report.attempts_by_model:
        table = Table(title="Attempts by model")
        table.add_column("Model")
        table.add_column("Calls", justify="right")
        for model, count in report.attempts_by_model.items():
            table.add_row(model, str(count))
        console.print(table)

    if report.failures_by_kind:
        table = Table(title="Failures")
        table.add_column("Kind", style="red")
        table.add_column("Runs", justify="right")
        for kind, count in report.failures_by_kind.items():
            table.add_row(kind, str(count))
        console.print(table)

    if recent > 0:
        table = Table(title="Recent runs")
        table.add_column("When", style="dim")
        table.add_column("Mode")
        table.add_column("Model")
        table.add_column("Result")
        for log in store.recent(limit=recent):
            table.add_row(
                log.timestamp.strftime("%m-%d %H:%M"),
                log.mode,
                log.model or "-",
                "ok" if log.success else log.failure_kind,
            )
        console.print(table)


if __name__ == "__main__":
    app()
