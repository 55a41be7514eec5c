#!/usr/bin/env python3
"""
Extract a normalized job record from a job description.

Prints the record as JSON on stdout. Errors go to stderr with exit code 1.

Usage:
    # Extract from a file
    python scripts/extract_job.py data/jobs/backend_engineer.txt

    # Extract from stdin
    pbpaste | python scripts/extract_job.py -

    # Keep a DEBUG session log and print compact JSON
    python scripts/extract_job.py job.txt --log-dir outs/logs --compact
"""

import json
import sys
from pathlib import Path
from typing import Optional
from typing_extensions import Annotated

import typer
from dotenv import load_dotenv

from jobtrack.contexts.extraction import ExtractionError, extract_job
from jobtrack.contexts.extraction.logger import setup_extraction_logger
from jobtrack.contexts.extraction.settings import load_settings
from jobtrack.utils.timestamp import now

# Load environment variables
load_dotenv()

app = typer.Typer(
    add_completion=False,
)


@app.command()
def main(
    source: Annotated[str, typer.Argument(help="Job description file, or '-' to read stdin")],
    log_dir: Annotated[
        Optional[Path],
        typer.Option("--log-dir", help="Write a DEBUG session log under this directory"),
    ] = None,
    compact: Annotated[
        bool, typer.Option("--compact", help="Print JSON on a single line")
    ] = False,
):
    """Extract and normalize one job description."""
    if source == "-":
        text = sys.stdin.read()
    else:
        path = Path(source)
        if not path.is_file():
            typer.echo(f"ERROR: File not found: {source}", err=True)
            raise typer.Exit(1)
        text = path.read_text(encoding="utf-8")

    if log_dir is not None:
        session_dir = log_dir / f"extract_{now():%Y%m%d_%H%M%S}"
        log_file = setup_extraction_logger(session_dir, load_settings())
        typer.echo(f"Logging to {log_file}", err=True)

    try:
        record = extract_job(text)
    except ExtractionError as e:
        typer.echo(f"ERROR: {e.message}", err=True)
        raise typer.Exit(1)

    typer.echo(json.dumps(record.to_dict(), indent=None if compact else 2, ensure_ascii=False))


if __name__ == "__main__":
    app()
