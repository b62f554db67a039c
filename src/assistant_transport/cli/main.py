"""CLI entry point for assistant-transport."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console

from assistant_transport.cli.output import StreamPrinter, frames_table
from assistant_transport.core.config import resolve_config
from assistant_transport.core.runtime import AssistantTransportRuntime, RollbackContext
from assistant_transport.observability.exporters import ObservabilityConfig, configure_exporters, shutdown
from assistant_transport.stream.decoder import DataStreamDecoder
from assistant_transport.types.config import ModelContext, TransportConfig
from assistant_transport.types.errors import DecodeError


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def cli(verbose: bool) -> None:
    """assistant-transport -- client for streaming agent endpoints.

    \b
    Usage:
      assistant-transport send --api http://localhost:8000/assistant "Hello"
      assistant-transport decode captured-stream.txt
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command("send")
@click.argument("message")
@click.option("--api", default=None, help="Endpoint URL (or ASSISTANT_TRANSPORT_API)")
@click.option("--token", default=None, help="Bearer token")
@click.option("--state", "state_json", default=None, help="Initial agent state as JSON")
@click.option("--system", default=None, help="System prompt")
@click.option("--markdown/--no-markdown", default=False, help="Render the reply as Markdown")
@click.option("--otel", is_flag=True, help="Export spans and metrics to the console")
def send_cmd(
    message: str,
    api: str | None,
    token: str | None,
    state_json: str | None,
    system: str | None,
    markdown: bool,
    otel: bool,
) -> None:
    """Send MESSAGE and stream the assistant's reply."""
    try:
        config = resolve_config(api, token=token)
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc
    if state_json is not None:
        try:
            config.initial_state = json.loads(state_json)
        except json.JSONDecodeError as exc:
            raise click.BadParameter(f"--state is not valid JSON: {exc}") from exc

    configure_exporters(ObservabilityConfig(enabled=otel))
    try:
        exit_code = asyncio.run(_send(config, message, system=system, markdown=markdown))
    finally:
        shutdown()
    sys.exit(exit_code)


async def _send(
    config: TransportConfig, message: str, *, system: str | None, markdown: bool,
) -> int:
    console = Console()
    err_console = Console(stderr=True)
    printer = StreamPrinter(console)
    failures: list[BaseException] = []

    def on_error(exc: BaseException, _ctx: RollbackContext) -> None:
        failures.append(exc)
        err_console.print(f"[red]Run failed:[/red] {exc}")

    async with AssistantTransportRuntime(
        config,
        context=ModelContext(system=system),
        on_error=on_error,
    ) as runtime:
        runtime.subscribe(lambda: printer.update(runtime.messages))
        runtime.append_message(message)
        try:
            await runtime.wait_idle()
        except KeyboardInterrupt:
            runtime.cancel()
        printer.finish(runtime.messages, markdown=markdown)
        if runtime.state is not None:
            err_console.print(f"[dim]state: {json.dumps(runtime.state, default=str)[:200]}[/dim]")
    return 1 if failures else 0


@cli.command("decode")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def decode_cmd(path: Path) -> None:
    """Decode a captured data stream file and list its frames."""
    decoder = DataStreamDecoder()
    try:
        frames = decoder.feed(path.read_bytes())
        decoder.close()
    except DecodeError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    Console().print(frames_table(frames))


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
