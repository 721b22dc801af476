from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import typer

from cottontail_client.client import SimpleClient
from cottontail_client.config import get_settings
from cottontail_client.domain.literals import to_insert
from cottontail_client.domain.messages import RequestMessage
from cottontail_client.errors import CottontailClientError
from cottontail_client.utils.logging import configure_logging, get_logger
from cottontail_client.utils.profiler import profile_block

app = typer.Typer(help="Cottontail DB client CLI.")

log = get_logger(__name__)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"server={settings.address} plaintext={settings.plaintext} | "
        f"max_in_flight={settings.batch_max_in_flight} "
        f"wait_timeout={settings.batch_wait_timeout_seconds} log_level={settings.log_level}"
    )


@app.command()
def query(
    request: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file holding a fully-formed query request."),
    explain: bool = typer.Option(False, "--explain", help="Explain the query instead of executing it."),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Stop after this many tuples."),
) -> None:
    """
    Execute a query and print every result tuple as one JSON line.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level)
    message = RequestMessage.model_validate_json(request.read_text(encoding="utf-8"))

    with SimpleClient(settings) as client:
        client.transport.connect()
        results = client.explain(message) if explain else client.query(message)
        with results:
            printed = 0
            for record in results:
                if limit is not None and printed >= limit:
                    break
                typer.echo(json.dumps(record.as_dict(), default=str))
                printed += 1
    log.info("Query finished", extra={"tuples": printed, "query_id": results.query_id})


@app.command("import")
def import_rows(
    entity: str = typer.Argument(..., help="Fully-qualified entity name (schema.entity)."),
    rows: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON lines file, one column->value object per row."),
    max_in_flight: Optional[int] = typer.Option(
        None,
        "--max-in-flight",
        "-m",
        help="Override the number of unacknowledged inserts (default from settings).",
    ),
) -> None:
    """
    Stream rows into an entity through a batched insert and commit them.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level)

    inserted = 0
    with SimpleClient(settings) as client, profile_block(f"import:{entity}") as stats:
        client.transport.connect()
        writer = client.batch_insert(max_in_flight=max_in_flight)
        with writer, rows.open("r", encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                writer.insert(to_insert(entity, json.loads(line)))
                inserted += 1

    typer.echo(
        f"Inserted {inserted} rows into {entity} in {stats.duration_seconds:.2f}s "
        f"({stats.throughput(inserted):.0f} rows/s, peak_rss={stats.peak_rss_bytes})."
    )


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
    except CottontailClientError as exc:
        typer.echo(f"Error: {exc}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
