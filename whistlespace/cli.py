"""WhistleSpace CLI — moderation and enforcement tools for admins."""

import asyncio
from dataclasses import replace

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from whistlespace import __version__
from whistlespace.auth.models import Role
from whistlespace.config import Settings, load_settings
from whistlespace.errors import WhistleSpaceError
from whistlespace.logging_config import configure_logging

console = Console()


def _service(ctx: click.Context):
    from whistlespace.service import ModerationService

    return ModerationService.from_settings(ctx.obj["settings"])


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", "config_path", default=None, help="Path to a YAML config file")
@click.option("--data-dir", "-d", default=None, help="Override the data directory")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, data_dir: str | None):
    """WhistleSpace — anonymous feedback moderation.

    Run text through the moderation pipeline, inspect a user's violation
    record, lift bans, and read notifications.
    """
    try:
        settings = load_settings(config_path)
    except WhistleSpaceError as e:
        raise click.ClickException(str(e))
    if data_dir:
        settings = replace(settings, data_dir=data_dir)
    configure_logging(settings.log_level)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


# ── Check ────────────────────────────────────────────────────────────


@main.command()
@click.argument("text")
@click.pass_context
def check(ctx: click.Context, text: str):
    """Run TEXT through the moderation pipeline without storing anything."""
    service = _service(ctx)
    verdict = asyncio.run(service.moderate(text))

    status = "[red]FLAGGED[/]" if verdict.flagged else "[green]clean[/]"
    console.print(f"\n[bold blue]WhistleSpace[/] — {status}\n")
    console.print(f"  Reason:   {verdict.reason}")
    console.print(f"  Provider: {verdict.provider.value}")
    if verdict.scores:
        table = Table(title="Scores")
        table.add_column("Category", style="cyan")
        table.add_column("Score", justify="right")
        for name, score in sorted(verdict.scores.items(), key=lambda kv: kv[1], reverse=True):
            style = "red" if score > ctx.obj["settings"].flag_threshold else "green"
            table.add_row(name, f"[{style}]{score:.3f}[/]")
        console.print(table)
    if verdict.details.get("errors"):
        for name, err in verdict.details["errors"].items():
            console.print(f"  [yellow]![/] {name}: {err}")


# ── Status ───────────────────────────────────────────────────────────


@main.command()
@click.argument("user_id")
@click.pass_context
def status(ctx: click.Context, user_id: str):
    """Show a user's violation record and flag history."""
    service = _service(ctx)
    user = service.users.get_user(user_id)
    if user is None:
        raise click.ClickException(f"User not found: {user_id}")

    lines = [
        f"[bold]{user.email}[/] ({user.role.value})",
        f"Warnings: {user.warning_count}/{service.engine.warning_threshold}",
    ]
    if user.is_banned():
        lines.append(f"[red]Banned until {user.ban_until.isoformat()}[/]")
    else:
        lines.append("[green]Not banned[/]")
    console.print(Panel("\n".join(lines), title=f"User {user.id}"))

    if not user.flag_history:
        console.print("[dim]No violations recorded.[/]")
        return

    table = Table(title=f"Flag History ({len(user.flag_history)})")
    table.add_column("When", style="dim")
    table.add_column("Action")
    table.add_column("Reason")
    table.add_column("Feedback", style="dim")
    for f in user.flag_history:
        table.add_row(
            f.timestamp.strftime("%Y-%m-%d %H:%M"),
            f.action_taken.value,
            f.reason[:60],
            f.feedback_ref,
        )
    console.print(table)


# ── Unban ────────────────────────────────────────────────────────────


@main.command()
@click.argument("user_id")
@click.option("--admin", "admin_id", required=True, help="Id of the admin lifting the ban")
@click.pass_context
def unban(ctx: click.Context, user_id: str, admin_id: str):
    """Lift a user's ban.  Their warning count is kept."""
    service = _service(ctx)
    admin = service.users.get_user(admin_id)
    if admin is None or admin.role != Role.admin:
        raise click.ClickException(f"{admin_id} is not an admin")

    async def _run():
        await service.unban(user_id, admin_id)
        await service.aclose()

    try:
        asyncio.run(_run())
    except WhistleSpaceError as e:
        raise click.ClickException(str(e))
    console.print(f"[green]v[/] User {user_id} has no active ban")


# ── Notifications ────────────────────────────────────────────────────


@main.command()
@click.argument("user_id")
@click.option("--unread", is_flag=True, help="Only show unread notifications")
@click.option("--page", default=1, type=int)
@click.option("--limit", default=10, type=int)
@click.pass_context
def notifications(ctx: click.Context, user_id: str, unread: bool, page: int, limit: int):
    """List a user's notifications, newest first."""
    service = _service(ctx)
    try:
        result = service.list_notifications(user_id, page, limit, unread_only=unread)
    except WhistleSpaceError as e:
        raise click.ClickException(str(e))

    if not result.notifications:
        console.print("[dim]No notifications.[/]")
        return

    table = Table(
        title=f"Notifications (page {result.current_page}/{max(result.total_pages, 1)}, "
        f"{result.unread_count} unread)"
    )
    table.add_column("", width=1)
    table.add_column("When", style="dim")
    table.add_column("Title")
    table.add_column("Severity")
    for n in result.notifications:
        table.add_row(
            " " if n.read else "[bold]*[/]",
            n.timestamp[:16].replace("T", " "),
            n.title,
            n.severity,
        )
    console.print(table)


# ── Config ───────────────────────────────────────────────────────────


@main.command(name="config")
@click.pass_context
def show_config(ctx: click.Context):
    """Print the effective settings with secrets masked."""
    settings: Settings = ctx.obj["settings"]
    table = Table(title="Effective Settings")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in settings.masked().items():
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value) if value else "[dim](none)[/]"
        table.add_row(key, str(value))
    console.print(table)


if __name__ == "__main__":
    main()
