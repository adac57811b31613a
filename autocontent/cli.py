"""CLI entry-point: serve the API, seed demo data, run the job worker and maintenance."""

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from autocontent.auth.models import Role
from autocontent.auth.service import AuthService
from autocontent.auth.store import get_user_store
from autocontent.cache import get_job_cache
from autocontent.config import get_settings
from autocontent.errors import AppError
from autocontent.jobs.criteria import JobFilterCriteria
from autocontent.jobs.service import JobQueueService
from autocontent.jobs.store import get_job_store
from autocontent.jobs.worker import build_queue, process_next_batch
from autocontent.seed import seed_all

app = typer.Typer(help="AutoContent: AI content generation with a filtered job queue")

_STATUS_COLORS = {
    "QUEUED": "cyan",
    "PROCESSING": "yellow",
    "COMPLETED": "green",
    "FAILED": "red",
    "CANCELLED": "magenta",
    "EXPIRED": "dim",
}


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(None, help="Port (default from PORT or 8000)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the HTTP API with uvicorn."""
    uvicorn.run("backend.main:app", host=host, port=port or get_settings().port, reload=reload)


@app.command()
def seed():
    """Create the demo accounts and the default option catalog."""
    console = Console()
    users, options = seed_all(get_settings())
    console.print(f"Created {users} user(s) and {options} catalog option(s).")
    console.print("[green]Done.[/green]")


@app.command("create-user")
def create_user(
    username: str = typer.Argument(..., help="Login name"),
    email: str = typer.Option(None, help="Email (default: <username>@autocontent.local)"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
    role: Role = typer.Option(Role.USER, case_sensitive=False, help="USER or ADMIN"),
):
    """Create an active account."""
    console = Console()
    users = get_user_store()
    auth = AuthService(users, get_settings())
    try:
        user = auth.create_user(username, email or f"{username}@autocontent.local", password, role=role)
    except AppError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)
    console.print(f"Created {user.role.value} '{user.username}' ({user.user_id})")


@app.command()
def worker(
    batch: int = typer.Option(10, "--batch", "-b", min=1, help="Jobs to process in this run"),
):
    """Process queued generation jobs in priority order."""
    console = Console()
    console.print(f"Processing up to {batch} queued job(s)...")
    processed = process_next_batch(batch)
    for job in processed:
        color = _STATUS_COLORS.get(job.status.value, "white")
        console.print(f"  {job.job_id}  [{color}]{job.status.value}[/{color}]")
    console.print(f"[green]Processed {len(processed)} job(s).[/green]")


@app.command()
def maintenance(
    cleanup_days: int = typer.Option(0, help="Also delete finished jobs older than N days (0 = keep)"),
):
    """Expire stale queued jobs and fail jobs stuck in processing."""
    console = Console()
    queue = build_queue()
    console.print(f"Expired: {queue.expire_jobs()}")
    console.print(f"Timed out: {queue.fail_timed_out_jobs()}")
    if cleanup_days > 0:
        console.print(f"Deleted: {queue.cleanup_old_jobs(cleanup_days)}")
    console.print("[green]Done.[/green]")


@app.command()
def jobs(
    username: str = typer.Argument(..., help="Owner of the jobs"),
    status: str = typer.Option(None, help="Comma-separated statuses, e.g. FAILED,CANCELLED"),
    content_type: str = typer.Option(None, "--content-type", help="Comma-separated content types"),
    search: str = typer.Option(None, help="Text search over content and errors"),
    size: int = typer.Option(20, min=1, max=100, help="Rows to show"),
):
    """Print a user's most recent jobs and their statistics."""
    console = Console()
    user = get_user_store().get_by_username(username)
    if user is None:
        console.print(f"[red]Error: user not found: {username}[/red]")
        raise typer.Exit(1)

    store = get_job_store()
    service = JobQueueService(store, build_queue(store), get_job_cache(), user.user_id)
    criteria = JobFilterCriteria.from_query(status=status, content_type=content_type, search=search)
    result = service.get_jobs(user.user_id, 0, size, criteria)

    table = Table(title=f"Jobs for {username} ({result.pagination.total_elements} total)")
    table.add_column("Job ID")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Created")
    table.add_column("Time", justify="right")
    table.add_column("Retries", justify="right")
    for job in result.jobs:
        color = _STATUS_COLORS.get(job.status.value, "white")
        table.add_row(
            job.job_id,
            job.content_type or "-",
            f"[{color}]{job.status.value}[/{color}]",
            job.created_at.strftime("%Y-%m-%d %H:%M"),
            job.formatted_execution_time,
            str(job.retry_count),
        )
    console.print(table)

    stats = result.statistics
    if stats is not None:
        console.print(
            f"Completed {stats.completed_jobs}/{stats.total_jobs} "
            f"({stats.success_rate_percentage:.1f}%), avg {stats.formatted_average_processing_time}, "
            f"{stats.total_tokens_used} tokens, ${stats.total_generation_cost:.4f}"
        )


if __name__ == "__main__":
    app()
