"""Avatar CLI entry point.

Provides command-line interface for the avatar.
Run with: python -m avatar
"""

import asyncio
import sys
from typing import Optional

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from avatar import __version__
from avatar.core.appearance import AppearanceError, AppearanceTable
from avatar.core.avatar import AvatarAgent, ConversationState
from avatar.core.config import AvatarConfig, load_config
from avatar.core.debug import DebugRegistry
from avatar.core.errors import ServiceError
from avatar.core.events import EventBus
from avatar.core.mood import Mood
from avatar.services import DialogClient, QAClient
from avatar.ui.console import CommandError, ConsoleDisplay, EventDispatcher, parse_command
from avatar.utils.logging import get_logger, setup_logging
from avatar.utils.text import truncate_answer

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="avatar")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to configuration file",
)
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug logging",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], debug: bool) -> None:
    """Avatar - a listening, thinking, answering conversational avatar."""
    ctx.ensure_object(dict)

    try:
        avatar_config = load_config(config)
    except ValueError as e:
        console.print(f"[red]Configuration invalid: {e}[/red]")
        sys.exit(1)
    ctx.obj["config"] = avatar_config
    ctx.obj["debug"] = debug

    log_level = "DEBUG" if debug else avatar_config.logging.level
    setup_logging(
        level=log_level,
        log_file=avatar_config.logging.file,
        console=avatar_config.logging.console,
        max_file_size=avatar_config.logging.max_file_size,
        backup_count=avatar_config.logging.backup_count,
        ui_mode=ctx.invoked_subcommand == "run",
    )


def _appearance_table(title: str, table: AppearanceTable) -> Table:
    out = Table(title=title, show_header=True, box=None, padding=(0, 2))
    out.add_column("Name", style="cyan")
    out.add_column("Color")
    out.add_column("Speed", justify="right")
    for key, style in table.items():
        hex_color = style.color.to_hex()
        out.add_row(key.name, Text(f"██ {hex_color}", style=hex_color), f"{style.speed:.2f}")
    return out


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Check configuration and appearance tables."""
    config: AvatarConfig = ctx.obj["config"]

    console.print("\n[bold blue]Avatar Status[/bold blue]\n")
    console.print(f"[bold]Version:[/bold] {__version__}")
    console.print()

    console.print("[bold]Configuration:[/bold]")
    config_table = Table(show_header=False, box=None)
    config_table.add_column("Setting", style="cyan")
    config_table.add_column("Value")

    config_table.add_row("Dialog Name", f'"{config.behavior.dialog_name}"')
    config_table.add_row("Default Pipeline", config.behavior.pipeline)
    config_table.add_row("Max Answer Length", str(config.behavior.max_answer_length))
    config_table.add_row("Restart Interval", f"{config.behavior.restart_interval}s")
    config_table.add_row(
        "Provider Templates",
        ", ".join(config.behavior.provider_templates) or "-",
    )
    config_table.add_row("Dialog Service", config.dialog.base_url)
    config_table.add_row("QA Service", config.qa.base_url)
    console.print(config_table)
    console.print()

    try:
        states = AppearanceTable.from_config(ConversationState, config.appearance.states)
        moods = AppearanceTable.from_config(Mood, config.appearance.moods)
    except AppearanceError as e:
        console.print(f"[red]Appearance configuration invalid: {e}[/red]\n")
        sys.exit(1)

    console.print(_appearance_table("States", states))
    console.print()
    console.print(_appearance_table("Moods", moods))
    console.print()


@cli.command()
@click.pass_context
def dialogs(ctx: click.Context) -> None:
    """List the dialogs available on the dialog service."""
    config: AvatarConfig = ctx.obj["config"]
    client = DialogClient(config.dialog)

    try:
        found = asyncio.run(client.list_dialogs())
    except ServiceError as e:
        console.print(f"[red]Dialog service error: {e}[/red]")
        sys.exit(1)

    table = Table(show_header=True, box=None, padding=(0, 2))
    table.add_column("Name", style="cyan")
    table.add_column("Dialog ID")
    table.add_column("")
    for dialog in found:
        marker = "*" if dialog.name == config.behavior.dialog_name else ""
        table.add_row(dialog.name, dialog.dialog_id, marker)
    console.print(table)


@cli.command()
@click.argument("pipeline")
@click.argument("question", nargs=-1, required=True)
@click.pass_context
def ask(ctx: click.Context, pipeline: str, question: tuple[str, ...]) -> None:
    """Ask QUESTION through PIPELINE and print the answers."""
    config: AvatarConfig = ctx.obj["config"]
    client = QAClient(config.qa)
    text = " ".join(question)

    try:
        response = asyncio.run(client.ask(pipeline, text))
    except ServiceError as e:
        console.print(f"[red]QA service error: {e}[/red]")
        sys.exit(1)

    if response.has_question:
        top = response.questions[0]
        console.print(f"[bold]Q:[/bold] {top.text} [dim]({top.confidence:.2f})[/dim]")
    if not response.has_answer:
        console.print("[yellow]No answers.[/yellow]")
        sys.exit(1)

    for answer in response.answers:
        shown = truncate_answer(answer.text, config.behavior.max_answer_length)
        console.print(f"[bold]A:[/bold] {shown} [dim]({answer.confidence:.2f})[/dim]")


@cli.command()
@click.option(
    "--no-speech",
    is_flag=True,
    help="Do not simulate speech output around each answer",
)
@click.pass_context
def run(ctx: click.Context, no_speech: bool) -> None:
    """Run an interactive avatar session in the terminal."""
    config: AvatarConfig = ctx.obj["config"]
    logger = get_logger(__name__)

    console.print("\n[bold blue]Starting avatar...[/bold blue]\n")
    console.print("Type a question, [cyan]dialog: text[/cyan], or a command:")
    console.print(
        "  [cyan]/wake /sleep /cancel /fail /mood NAME /next-mood "
        "/speak on|off /debug on|off /info /quit[/cyan]\n"
    )

    async def main() -> None:
        bus = EventBus()
        registry = DebugRegistry(active=ctx.obj["debug"])
        agent = AvatarAgent(
            config,
            event_bus=bus,
            dialog_client=DialogClient(config.dialog),
            qa_client=QAClient(config.qa),
            debug_registry=registry,
        )
        display = ConsoleDisplay(
            bus,
            agent.state_styles,
            agent.mood_styles,
            console=console,
            simulate_speech=not no_speech,
        )
        agent.display_factory = display.open_question
        dispatcher = EventDispatcher(bus)

        display.start()
        await agent.attach()
        logger.info("avatar_session_started", version=__version__)

        try:
            while True:
                line = await asyncio.to_thread(console.input, "[bold]> [/bold]")
                command = line.strip().lower()
                if command in ("/quit", "/exit"):
                    break
                if command == "/next-mood":
                    await agent.next_mood()
                    continue
                if command == "/info":
                    display.print_debug(registry)
                    continue

                try:
                    events = parse_command(line)
                except CommandError as e:
                    console.print(f"[yellow]{e}[/yellow]")
                    continue

                task = dispatcher.dispatch(events)
                # Let quick handlers finish before the next prompt
                await asyncio.wait({task}, timeout=0.1)

                if registry.active:
                    display.print_debug(registry)
        finally:
            await dispatcher.close()
            await agent.detach()
            display.stop()
            logger.info("avatar_session_stopped", uptime=agent.stats.uptime)

    try:
        asyncio.run(main())
    except (KeyboardInterrupt, EOFError):
        console.print("\n[bold]Avatar stopped.[/bold]\n")


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
