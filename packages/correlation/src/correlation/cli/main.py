"""
Correlation CLI

Command-line interface for submitting and inspecting correlated requests.

Commands:
- submit: Submit a payload (optionally wait for the result)
- poll: Show whether a request has finished
- inspect: Show the full stored record
- worker: Run a worker in the foreground
"""

import time

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from correlation.contracts.api import SubmitRequest
from correlation.exceptions import (
    RecordNotFoundError,
    RecordSerializationError,
    StoreError,
    StoreTransportError,
)

app = typer.Typer(
    name="correlation",
    help="Asynchronous request correlation CLI",
)

console = Console()


def get_services():
    """Build services from the environment."""
    from relaycore.logging import setup_logging

    from correlation.factory import build_services

    setup_logging()
    return build_services()


def _fail_lookup(request_id: str, error: StoreError) -> None:
    if isinstance(error, RecordNotFoundError):
        rprint(f"[red]Request not found (unknown or expired): {request_id}[/red]")
    elif isinstance(error, StoreTransportError):
        rprint(f"[red]Store unavailable: {error}[/red]")
    elif isinstance(error, RecordSerializationError):
        rprint(f"[red]Stored record is corrupt: {error}[/red]")
    else:
        rprint(f"[red]Error: {error}[/red]")
    raise typer.Exit(1)


@app.command()
def submit(
    payload: str = typer.Argument(..., help="Request payload"),
    wait: bool = typer.Option(False, "--wait", "-w", help="Poll until the request finishes"),
    timeout: float = typer.Option(30.0, help="Seconds to wait with --wait"),
    interval: float = typer.Option(0.2, help="Seconds between polls with --wait"),
):
    """
    Submit a request for asynchronous processing.

    Prints the correlation id. With --wait, polls until the request finishes.
    """
    services = get_services()

    try:
        result = services.submission.submit(SubmitRequest(payload=payload))

        if result.is_error:
            rprint(f"[red]Submission failed: {result.error_message}[/red]")
            raise typer.Exit(1)

        rprint(f"[green]Submitted[/green] {result.request_id}")

        if not wait:
            return

        deadline = time.monotonic() + timeout
        while True:
            try:
                poll_result = services.poll.poll(result.request_id)
            except StoreError as e:
                _fail_lookup(result.request_id, e)

            if poll_result.is_request_finished:
                break
            if time.monotonic() >= deadline:
                rprint(f"[yellow]Still pending after {timeout}s: {result.request_id}[/yellow]")
                raise typer.Exit(2)
            time.sleep(interval)

        if poll_result.is_response_error:
            rprint(f"[red]Finished with error:[/red] {poll_result.response_payload}")
            raise typer.Exit(1)

        rprint(f"[green]Finished:[/green] {poll_result.response_payload}")

    finally:
        services.close()


@app.command()
def poll(
    request_id: str = typer.Argument(..., help="Correlation id from submit"),
):
    """
    Show whether a request has finished.
    """
    services = get_services()

    try:
        try:
            result = services.poll.poll(request_id)
        except StoreError as e:
            _fail_lookup(request_id, e)

        if not result.is_request_finished:
            rprint(f"[yellow]Pending[/yellow] {request_id}")
        elif result.is_response_error:
            rprint(f"[red]Error[/red] {result.response_payload}")
        else:
            rprint(f"[green]Finished[/green] {result.response_payload}")

    finally:
        services.close()


@app.command()
def inspect(
    request_id: str = typer.Argument(..., help="Correlation id from submit"),
):
    """
    Show the full stored record and its remaining TTL.
    """
    services = get_services()

    try:
        try:
            record = services.poll.inspect(request_id)
            ttl = services.store.remaining_ttl(request_id)
        except StoreError as e:
            _fail_lookup(request_id, e)

        table = Table(title=f"Record {request_id}")
        table.add_column("Field", style="dim")
        table.add_column("Value")

        table.add_row("state", str(record.state))
        for name, value in record.to_dict().items():
            table.add_row(name, str(value))
        table.add_row("ttl_seconds", str(ttl) if ttl is not None else "-")

        console.print(table)

    finally:
        services.close()


@app.command()
def worker(
    reclaim: bool = typer.Option(True, help="Reclaim idle pending messages at startup (stream mode)"),
):
    """
    Run a worker in the foreground until interrupted.
    """
    services = get_services()

    if services.channel is None:
        rprint("[red]Inline dispatch mode has no channel; set DISPATCH_MODE to pubsub or stream[/red]")
        raise typer.Exit(1)

    request_worker = services.worker()
    services.channel.start()
    if reclaim:
        reclaimed = request_worker.reclaim_pending(
            min_idle_ms=services.settings.RECLAIM_IDLE_MS,
        )
        if reclaimed:
            rprint(f"[cyan]Reclaimed {reclaimed} pending messages[/cyan]")

    rprint(
        f"[cyan]Worker consuming {services.channel.name} "
        f"({services.settings.DISPATCH_MODE}, processor={services.settings.PROCESSOR})[/cyan]"
    )

    try:
        request_worker.run()
    except KeyboardInterrupt:
        rprint("[yellow]Interrupted[/yellow]")
    finally:
        services.close()

    rprint(f"[green]Worker stopped after {request_worker.processed} requests[/green]")


if __name__ == "__main__":
    app()
