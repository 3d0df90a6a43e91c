"""CLI entry point for api-normalizer."""

import logging
from pathlib import Path

import click

from api_normalizer.config import NormalizerSettings
from api_normalizer.errors import ParseError
from api_normalizer.normalizer import HINTS, normalize
from api_normalizer.parser.detect import detect_format


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """API Normalizer: turn OpenAPI/Swagger or free-text API docs into one canonical spec."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command("normalize")
@click.argument("doc_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", default=None, type=click.Path(dir_okay=False, path_type=Path), help="Write the JSON result here instead of stdout.")
@click.option("--format", "fmt", default="auto", type=click.Choice(HINTS), help="Document format.")
def normalize_cmd(doc_path: Path, output: Path | None, fmt: str):
    """Normalize an API document and print the canonical spec as JSON."""
    content = doc_path.read_text(encoding="utf-8")
    try:
        result = normalize(content, hint=fmt, settings=NormalizerSettings())
    except ParseError as e:
        raise click.ClickException(f"{doc_path}: {e}") from e

    click.echo(f"Found {len(result.spec.endpoints)} endpoints ({result.spec.source_type}).", err=True)
    for warning in result.warnings:
        click.echo(f"warning: {warning}", err=True)
    for todo in result.todos:
        click.echo(todo, err=True)

    payload = result.model_dump_json(indent=2, by_alias=True)
    if output is None:
        click.echo(payload)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(payload + "\n", encoding="utf-8")
    click.echo(f"Canonical spec saved to {output}", err=True)


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def detect(doc_path: Path):
    """Print which normalizer would handle DOC_PATH ('openapi' or 'text')."""
    click.echo(detect_format(doc_path.read_text(encoding="utf-8")))
