"""
Academic Admin Assistant — Main CLI Entrypoint.

Wires all layers and runs the interactive CLI loop.
"""

import argparse
import asyncio
import csv
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich import box

from confirmation.gate import ConfirmationGate, ConfirmationRecognizer
from conversation.manager import ConversationManager
from entry.cli import CLIAdapter
from execution.dispatcher import Dispatcher
from models.adapter import ModelAdapter
from orchestrator.loop import ConversationLoop
from registry.action_registry import ActionRegistry
from registry.catalog import build_default_registry
from shared.config import AppSettings
from shared.models import DataTable, ResponseEnvelope
from shared.response_formatter import table_columns
from storage.academic_store import USER_IMPORT_COLUMNS, USER_IMPORT_TEMPLATE, AcademicStore
from storage.sample_data import seed_sample_data

# ─── Configuration ──────────────────────────────────────────────

logger = logging.getLogger(__name__)

# Ensure local .env is loaded before reading runtime configuration.
load_dotenv(override=False)

# ─── Rich Console ───────────────────────────────────────────────

console = Console()


def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


@dataclass
class Pipeline:
    settings: AppSettings
    registry: ActionRegistry
    store: AcademicStore
    model_adapter: ModelAdapter
    gate: ConfirmationGate
    dispatcher: Dispatcher
    conversation: ConversationManager
    loop: ConversationLoop

    def close(self) -> None:
        self.model_adapter.close()
        self.conversation.close()
        self.store.close()


def build_pipeline(settings: AppSettings | None = None) -> Pipeline:
    """Wire all layers together. Fails fast on catalog/store mismatch."""
    settings = settings or AppSettings.from_env()
    registry = build_default_registry()

    store = AcademicStore(db_path=settings.academic_db_path)
    registry.verify_capability(store.supported_actions())

    model_adapter = ModelAdapter.from_settings(settings, registry)
    gate = ConfirmationGate(
        registry,
        ConfirmationRecognizer(yes_words=settings.confirm_yes_words, no_words=settings.confirm_no_words),
    )
    dispatcher = Dispatcher(registry, store)
    conversation = ConversationManager(db_path=settings.conversation_db_path)
    loop = ConversationLoop(
        model_adapter=model_adapter,
        gate=gate,
        dispatcher=dispatcher,
        conversation=conversation,
        history_limit=settings.history_limit,
    )
    return Pipeline(
        settings=settings,
        registry=registry,
        store=store,
        model_adapter=model_adapter,
        gate=gate,
        dispatcher=dispatcher,
        conversation=conversation,
        loop=loop,
    )


# ─── Rendering ──────────────────────────────────────────────────

def build_rich_table(table: DataTable) -> Table:
    rich_table = Table(
        title=f"📊 {table.title}",
        box=box.SIMPLE_HEAVY,
        show_header=True,
        header_style="bold cyan",
    )
    columns = table_columns(table)
    for column in columns:
        rich_table.add_column(str(column), style="white")
    for row in table.rows:
        rich_table.add_row(*("-" if row.get(column) is None else str(row.get(column)) for column in columns))
    return rich_table


def render_envelope(envelope: ResponseEnvelope) -> None:
    """Render a ResponseEnvelope to the CLI using Rich."""
    console.print()
    if envelope.needs_confirmation:
        if envelope.intro_text:
            console.print(Text(envelope.intro_text, style="white"))
        console.print(Panel(
            Text(envelope.confirmation_prompt or "", style="bold yellow"),
            title="❓ Confirm Action",
            border_style="yellow",
            box=box.ROUNDED,
        ))
        return

    if envelope.intro_text:
        console.print(Panel(
            Text(envelope.intro_text, style="bold green" if envelope.success else "white"),
            title="🤖 Assistant",
            border_style="cyan",
            box=box.ROUNDED,
        ))

    for table in envelope.tables or []:
        console.print(build_rich_table(table))

    if envelope.error:
        console.print(Panel(
            Text(f"Error: {envelope.error}", style="bold red"),
            title="❌ Failed",
            border_style="red",
            box=box.ROUNDED,
        ))

    if envelope.outro_text:
        console.print(Text(f"  {envelope.outro_text}", style="dim"))


# ─── Interactive loop ───────────────────────────────────────────

async def run_agent_loop(settings: AppSettings) -> None:
    """Interactive Agent Loop."""
    console.print(Panel(
        Text.from_markup(
            "[bold cyan]Academic Admin Assistant[/bold cyan]\n"
            f"[dim]Provider: {settings.default_provider}[/dim]\n"
            "[dim]Type your request, /help for commands, or 'exit' to quit[/dim]"
        ),
        title="🤖",
        border_style="cyan",
        box=box.DOUBLE,
    ))

    try:
        pipeline = build_pipeline(settings)
    except Exception as e:
        console.print(f"[bold red]Failed to initialize pipeline:[/] {e}")
        sys.exit(1)

    cli = CLIAdapter(
        provider=settings.default_provider,
        available_providers=pipeline.model_adapter.provider_ids,
    )
    console.print(f"[dim]Session: {cli.session_id}[/dim]")
    console.print(f"[dim]Actions: {len(pipeline.registry)}[/dim]")
    console.print()

    try:
        while True:
            raw_input = console.input("[bold cyan]You → [/]")

            if raw_input.strip().lower() in ("exit", "quit", "q"):
                console.print("[dim]Goodbye! 👋[/dim]")
                break
            if not raw_input.strip():
                continue
            if cli.is_command(raw_input):
                console.print(f"[dim]{cli.handle_command(raw_input)}[/dim]")
                continue

            entry_request = cli.read_input(raw_input)
            with console.status("[yellow]Thinking...[/yellow]", spinner="dots"):
                envelope = await pipeline.loop.chat(
                    entry_request.session_id,
                    entry_request.input_text,
                    provider=entry_request.provider,
                )
            render_envelope(envelope)
            console.print()
    finally:
        pipeline.close()


# ─── Admin Commands ─────────────────────────────────────────────

def admin_list_actions() -> None:
    registry = build_default_registry()
    table = Table(title="Registered Actions")
    table.add_column("Name", style="cyan")
    table.add_column("Entity", style="magenta")
    table.add_column("Operation")
    table.add_column("Mutating", style="yellow")
    table.add_column("Parameters", style="dim")
    for item in registry.catalog():
        table.add_row(
            item["name"],
            item["entity"],
            item["operation"],
            "yes" if item["mutating"] else "",
            ", ".join(item["parameters"].keys()),
        )
    console.print(table)


def admin_users_import(path: str, settings: AppSettings) -> None:
    file_path = Path(path)
    if not file_path.exists():
        console.print(f"[bold red]File not found:[/] {path}")
        sys.exit(1)

    with file_path.open(newline="", encoding="utf-8-sig") as handle:
        rows = list(csv.DictReader(handle))

    store = AcademicStore(db_path=settings.academic_db_path)
    try:
        report = store.import_users(rows)
    finally:
        store.close()

    style = "green" if not report.errors else "yellow"
    console.print(f"[{style}]Imported {report.success_count}/{report.total_rows} users.[/]")
    for error in report.errors:
        console.print(f"  [red]•[/] {error}")


def admin_users_template(output: str | None) -> None:
    if output:
        with open(output, "w", newline="", encoding="utf-8") as handle:
            writer = csv.DictWriter(handle, fieldnames=list(USER_IMPORT_COLUMNS))
            writer.writeheader()
            for row in USER_IMPORT_TEMPLATE:
                writer.writerow({key: "" if value is None else value for key, value in row.items()})
        console.print(f"[green]Template written to {output}[/]")
        return
    console.print(build_rich_table(DataTable(title="User Import Template", rows=list(USER_IMPORT_TEMPLATE))))


def admin_seed(settings: AppSettings) -> None:
    store = AcademicStore(db_path=settings.academic_db_path)
    try:
        for line in seed_sample_data(store):
            console.print(f"[dim]{line}[/dim]")
        counts = store.table_counts()
    finally:
        store.close()
    table = Table(title="Table Counts")
    table.add_column("Table", style="cyan")
    table.add_column("Rows", style="white")
    for name, count in counts.items():
        table.add_row(name, str(count))
    console.print(table)


def main() -> None:
    """Entrypoint with CLI args."""
    settings = AppSettings.from_env()
    setup_logging(settings.log_level)

    parser = argparse.ArgumentParser(description="Academic Admin Assistant")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    run_parser = subparsers.add_parser("run", help="Run interactive assistant")
    run_parser.add_argument("--provider", default=None, help="Model provider (gemini, llama, deepseek)")

    subparsers.add_parser("actions", help="List registered actions")

    import_parser = subparsers.add_parser("users-import", help="Bulk import users from a CSV file")
    import_parser.add_argument("file", help="CSV file with the template columns")

    template_parser = subparsers.add_parser("users-template", help="Show or write the user import template")
    template_parser.add_argument("--output", default=None, help="Write the template as CSV to this path")

    subparsers.add_parser("seed", help="Seed the academic database with sample records")

    args = parser.parse_args()

    if args.command == "actions":
        admin_list_actions()
    elif args.command == "users-import":
        admin_users_import(args.file, settings)
    elif args.command == "users-template":
        admin_users_template(args.output)
    elif args.command == "seed":
        admin_seed(settings)
    elif args.command == "run" or args.command is None:
        provider = getattr(args, "provider", None)
        if provider:
            settings = settings.model_copy(update={"default_provider": provider.lower()})
        try:
            asyncio.run(run_agent_loop(settings))
        except KeyboardInterrupt:
            pass
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
