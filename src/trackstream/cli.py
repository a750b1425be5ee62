"""CLI implementation for trackstream."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from . import stream, stream_sync
from .catalog import JsonTrackCatalog
from .core.config import CHUNK_SIZE, StreamConfig
from .core.model import RangeUnsatisfiable, ResourceUnavailable
from .core.util import outcome_asdict
from .sinks import AsyncFileSink, FileSink

app = typer.Typer(add_completion=False, help="Stream audio tracks with HTTP byte-range support.")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def serve(
    storage: str = typer.Option(..., "--storage", help="Storage root: directory or http(s) base URL"),
    catalog: Optional[Path] = typer.Option(None, "--catalog", exists=True, dir_okay=False,
                                           help="JSON track catalog enabling /tracks/<id>/stream"),
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
    chunk_size: int = typer.Option(CHUNK_SIZE, "--chunk-size", min=1, help="Bytes per write"),
    strict_ranges: bool = typer.Option(False, "--strict-ranges", help="Answer 416 to unsatisfiable ranges"),
    log_level: str = typer.Option("info", "--log-level"),
):
    """Run the streaming endpoint on werkzeug's development server."""
    from werkzeug.serving import run_simple

    from .web.wsgi import create_app

    _configure_logging(log_level)
    config = StreamConfig(chunk_size=chunk_size, strict_ranges=strict_ranges)
    resolver = JsonTrackCatalog.from_file(catalog) if catalog else None
    run_simple(host, port, create_app(storage, resolver, config), threaded=True)


@app.command()
def fetch(
    source: str = typer.Argument(..., help="Local path or URL to stream"),
    range_header: Optional[str] = typer.Option(None, "--range", help="Range header, e.g. 'bytes=0-1023'"),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Write the body to PATH ('-' for stdout)"),
    mime: Optional[str] = typer.Option(None, "--mime", help="Override the guessed Content-Type"),
    chunk_size: int = typer.Option(CHUNK_SIZE, "--chunk-size", min=1, help="Bytes per write"),
    strict_ranges: bool = typer.Option(False, "--strict-ranges", help="Fail on unsatisfiable ranges"),
    sync: bool = typer.Option(False, "--sync", help="Force synchronous I/O"),
    log_level: str = typer.Option("warning", "--log-level"),
):
    """Stream SOURCE through the range streamer and report status, headers and outcome as JSON."""
    _configure_logging(log_level)
    config = StreamConfig(chunk_size=chunk_size, strict_ranges=strict_ranges)
    to_stdout = output is not None and str(output) == "-"

    # a path is only created once the response headers are committed
    body = sys.stdout.buffer if to_stdout else output
    sink = FileSink(body) if sync else AsyncFileSink(body)
    try:
        if sync:
            outcome = stream_sync(source, sink, range_header=range_header, config=config, mime_type=mime)
        else:
            outcome = asyncio.run(stream(source, sink, range_header=range_header, config=config, mime_type=mime))
    except (ResourceUnavailable, RangeUnsatisfiable) as e:
        typer.echo(json.dumps({"success": False, "error": str(e)}), err=True)
        raise typer.Exit(code=1)
    finally:
        sink.close()

    report = outcome_asdict(outcome, status=sink.status, headers=sink.headers)
    report["success"] = True
    typer.echo(json.dumps(report, indent=2), err=to_stdout)


if __name__ == "__main__":
    app()
