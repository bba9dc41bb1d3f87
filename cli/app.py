from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import echo_key_values, render_answer, render_snapshot, render_status


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the cement plant dashboard service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Dashboard API base URL (defaults to API_BASE_URL env or http://localhost:3001).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Request timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("snapshot")
def snapshot_command(ctx: typer.Context) -> None:
    """Show the latest dashboard snapshot."""
    state = _get_state(ctx)
    render_snapshot(state.client.get_snapshot())


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show the active data source and replay position."""
    state = _get_state(ctx)
    render_status(state.client.get_status())


@app.command("load-real")
def load_real_command(
    ctx: typer.Context,
    data_type: str = typer.Argument("sample", help='"sample" or "csv".'),
    path: Optional[str] = typer.Option(None, "--path", "-p", help="CSV path for the csv data type."),
) -> None:
    """Load a recorded data sequence for replay."""
    state = _get_state(ctx)
    payload = state.client.load_real(data_type, path)
    typer.secho(payload.get("message", "Loaded."), fg=typer.colors.GREEN)


@app.command("toggle")
def toggle_command(ctx: typer.Context) -> None:
    """Switch between simulated and recorded data."""
    state = _get_state(ctx)
    payload = state.client.toggle()
    echo_key_values(
        [
            ("message", payload.get("message")),
            ("current_data_source", payload.get("current_data_source")),
        ]
    )


@app.command("ask")
def ask_command(
    ctx: typer.Context,
    message: str = typer.Argument(..., help="Question for the plant assistant."),
    context: bool = typer.Option(
        True,
        "--context/--no-context",
        help="Attach the latest plant snapshot to the question.",
    ),
) -> None:
    """Ask the plant assistant a question."""
    state = _get_state(ctx)
    render_answer(state.client.ask(message, include_context=context))
