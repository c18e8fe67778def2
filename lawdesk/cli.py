"""CLI tools for lawdesk administration."""

import click

from lawdesk.core.config import settings
from lawdesk.core.structured_logging import configure_logging
from lawdesk.db.session import SessionLocal, init_db
from lawdesk.services import task_service


@click.group()
def cli():
    """Lawdesk scheduling CLI tools."""
    configure_logging(settings.LOG_LEVEL)


@cli.command("init-db")
def init_db_command():
    """
    Create all tables, including the appointment slot index.

    Example:
        python -m lawdesk.cli init-db
    """
    init_db()
    click.echo("✓ Database initialized")


@cli.command("run-worker")
def run_worker():
    """Run the reminder worker in the foreground (Ctrl+C to stop)."""
    from lawdesk.worker import main

    main()


@cli.command("overdue-tasks")
@click.option("--limit", default=50, show_default=True, help="Maximum rows to print")
def overdue_tasks(limit: int):
    """
    List open tasks whose due date has passed.

    Example:
        python -m lawdesk.cli overdue-tasks --limit 20
    """
    db = SessionLocal()
    try:
        tasks = task_service.get_overdue_tasks(db)
        if not tasks:
            click.echo("No overdue tasks")
            return
        for task in tasks[:limit]:
            click.echo(
                f"{task.id}  due {task.due_date:%Y-%m-%d %H:%M}  "
                f"[{task.priority}] {task.title}"
            )
        click.echo(f"{len(tasks)} overdue task(s)")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
