"""Click command line for Ledgerboard."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterator, Optional

import click

from .config import BaseConfig
from .constants.categories import category_style
from .context import AppContext, create_app_context
from .errors import LedgerboardError, user_message
from .forms import TransactionForm
from .logging_config import get_logger, setup_logging
from .models.task import TaskStatus
from .services import auth as auth_service
from .services.maintenance import analyze_recurring_duplicates, dedupe_recurring_templates

logger = get_logger("cli")


@contextmanager
def _reported() -> Iterator[None]:
    """Turn domain errors into click errors carrying the user-facing message."""

    try:
        yield
    except LedgerboardError as exc:
        logger.info("Command failed", extra={"error": type(exc).__name__, "detail": str(exc)})
        raise click.ClickException(f"{user_message(exc)} {exc}") from exc


def _app(ctx: click.Context) -> AppContext:
    return ctx.obj["app"]


def _sign_in(ctx: click.Context) -> AppContext:
    app = _app(ctx)
    if app.auth.current_user_id is not None:
        return app
    username = ctx.obj.get("username")
    password = ctx.obj.get("password")
    if not username or password is None:
        raise click.UsageError("--username and --password (or LEDGERBOARD_USERNAME/PASSWORD) are required")
    with _reported():
        app.auth.sign_in(username, password)
    return app


def _money(amount: float) -> str:
    sign = "-" if amount < 0 else "+"
    return f"{sign}{abs(amount):,.2f}"


@click.group()
@click.option("--username", envvar="LEDGERBOARD_USERNAME", help="Account to act as")
@click.option("--password", envvar="LEDGERBOARD_PASSWORD", help="Password for --username")
@click.pass_context
def cli(ctx: click.Context, username: Optional[str], password: Optional[str]) -> None:
    """Track income, expenses, recurring bills and bill tasks."""

    ctx.ensure_object(dict)
    if "app" not in ctx.obj:
        config = BaseConfig()
        setup_logging(config)
        ctx.obj["app"] = create_app_context(config)
    ctx.obj["username"] = username
    ctx.obj["password"] = password


@cli.command("create-user")
@click.argument("username")
@click.password_option()
@click.pass_context
def create_user(ctx: click.Context, username: str, password: str) -> None:
    """Create a local account."""

    with _reported():
        user = auth_service.create_user(
            username=username, password=password, session_factory=_app(ctx).session_factory
        )
    click.echo(f"Created user {user.username} (id {user.id})")


@cli.command("add")
@click.option("--description", "-d", required=True)
@click.option("--amount", "-a", type=float, required=True, help="Positive income, negative expense")
@click.option("--date", "occurred_on", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.option("--category", "-c", default=None)
@click.option("--recurring", is_flag=True, default=False, help="Repeat every month")
@click.pass_context
def add(
    ctx: click.Context,
    description: str,
    amount: float,
    occurred_on: Optional[datetime],
    category: Optional[str],
    recurring: bool,
) -> None:
    """Record a transaction or a monthly recurring template."""

    app = _sign_in(ctx)
    occurred_at = occurred_on or datetime.combine(date.today(), datetime.min.time())
    form = TransactionForm(
        description=description,
        amount=amount,
        occurred_at=occurred_at,
        category=category,
        is_recurring=recurring,
    )
    with _reported():
        created = app.transactions.add_transaction(form)
    kind = "recurring template" if created.is_recurring else "transaction"
    click.echo(f"Added {kind} {created.id}: {created.description} {_money(created.amount)}")


@cli.command("month")
@click.argument("year_month", required=False)
@click.pass_context
def month(ctx: click.Context, year_month: Optional[str]) -> None:
    """Show a month's transactions, overdue bills and balance."""

    app = _sign_in(ctx)
    year_month = year_month or app.months.current_month()
    with _reported():
        view = app.months.month_view(year_month)
        overdue = {v.key for v in app.months.overdue(year_month)}
    click.echo(f"{year_month}")
    for item in view.transactions:
        label = category_style(item.category).label
        marker = " OVERDUE" if item.key in overdue else ""
        click.echo(
            f"  {item.id:<14} {item.occurred_at:%Y-%m-%d} {item.description:<30} "
            f"{_money(item.amount):>14} {label}{marker}"
        )
    click.echo(f"Balance: {_money(view.balance)}")


@cli.command("tasks")
@click.option(
    "--status",
    type=click.Choice([s.value for s in TaskStatus]),
    default=None,
    help="Only show one column",
)
@click.pass_context
def tasks(ctx: click.Context, status: str | None) -> None:
    """Show the task board after synchronizing this month's bills."""

    app = _sign_in(ctx)
    with _reported():
        app.months.refresh(app.months.current_month())
        if status is None:
            board = app.months.board()
            columns = list(TaskStatus)
        else:
            board = app.tasks.tasks_by_status(TaskStatus(status))
            columns = [TaskStatus(status)]
    for column in columns:
        click.echo(f"[{column.value}]")
        for task in (t for t in board if t.status == column.value):
            linked = f" (bill {task.linked_month})" if task.is_linked else ""
            click.echo(f"  {task.id:>4} {task.title:<30} {task.amount:>12,.2f}{linked}")


@cli.command("delete")
@click.argument("key")
@click.option("--all", "all_occurrences", is_flag=True, default=False, help="Delete every occurrence")
@click.pass_context
def delete(ctx: click.Context, key: str, all_occurrences: bool) -> None:
    """Delete a transaction, one occurrence ("<id>#YYYY-MM"), or a whole template."""

    app = _sign_in(ctx)
    with _reported():
        if all_occurrences:
            removed = app.transactions.delete_all_recurring(key)
            click.echo(f"Deleted recurring transaction {key} and {removed} linked task(s)")
            return
        app.transactions.delete_transaction(key)
    click.echo(f"Deleted {key}")


@cli.command("dedupe-recurring")
@click.option("--dry-run", is_flag=True, default=False, help="Only report duplicates")
@click.pass_context
def dedupe_recurring(ctx: click.Context, dry_run: bool) -> None:
    """Remove duplicate recurring templates, keeping the oldest of each group."""

    app = _sign_in(ctx)
    user_id = app.require_user_id()
    with _reported():
        report = analyze_recurring_duplicates(user_id=user_id, session_factory=app.session_factory)
        click.echo(f"Templates: {report.total}, unique: {report.unique}, duplicates: {report.duplicates}")
        if dry_run or not report.duplicates:
            return
        summary = dedupe_recurring_templates(
            user_id=user_id, session_factory=app.session_factory, feed=app.feed
        )
    click.echo(
        f"Removed {summary.templates_removed} template(s) and {summary.tasks_removed} linked task(s)"
    )


def main() -> None:
    cli(obj={})


__all__ = ["cli", "main"]
