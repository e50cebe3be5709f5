"""Command-line interface for rru utilities."""
from __future__ import annotations

import json
import logging
from pathlib import Path

import click

from .archive_org import Renamer, Verifier, load_metadata, print_summary
from .checksum import ALGORITHMS, digest_file
from .errors import RruError

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

logger = logging.getLogger(__name__)


def _metadata_options(func):
    """Options shared by every command that reads archive.org metadata."""
    func = click.option("--max-depth", type=click.IntRange(min=1), default=None,
                        help="Reject documents nested deeper than this.")(func)
    func = click.option("--strict/--no-strict", default=False,
                        help="Check that closing tags match their opening tags.")(func)
    func = click.option("--metadata", required=True,
                        help="Path or URL to the archive.org files XML metadata.")(func)
    return func


def _load(metadata: str, strict: bool, max_depth: int | None):
    try:
        return load_metadata(metadata, strict=strict, max_depth=max_depth)
    except RruError as exc:
        logger.error("%s", exc)
        raise click.ClickException(str(exc)) from exc


@click.group()
def cli():
    """Rename and verify files downloaded from archive.org."""


@cli.command("rename", help="Batch rename archive.org files.")
@_metadata_options
@click.option("--path", "files_path", type=click.Path(exists=True, file_okay=False, path_type=Path),
              default=Path("."), show_default=True, help="Directory of the files to rename.")
@click.option("--rename-to-title", "direction", flag_value="title",
              help="Rename files from their source name to their title.")
@click.option("--rename-to-source", "direction", flag_value="source",
              help="Rename files from their title back to their source name.")
def rename(metadata: str, strict: bool, max_depth: int | None, files_path: Path, direction: str | None):
    if direction is None:
        click.echo("Nothing to do...exiting")
        return
    root = _load(metadata, strict, max_depth)
    try:
        report = Renamer(files_path, to_title=direction == "title").run(root)
    except RruError as exc:
        logger.error("%s", exc)
        raise click.ClickException(str(exc)) from exc
    print_summary(report)


@cli.command("verify", help="Verify integrity of files downloaded from archive.org.")
@_metadata_options
@click.option("--path", "files_path", type=click.Path(exists=True, file_okay=False, path_type=Path),
              default=Path("."), show_default=True, help="Directory of the files to test.")
@click.option("--rename-to-title", is_flag=True, help="Rename passing files to their title.")
def verify(metadata: str, strict: bool, max_depth: int | None, files_path: Path, rename_to_title: bool):
    root = _load(metadata, strict, max_depth)
    try:
        report = Verifier(files_path, rename_to_title=rename_to_title).run(root)
    except RruError as exc:
        logger.error("%s", exc)
        raise click.ClickException(str(exc)) from exc
    print_summary(report)
    if report.failed or report.missing:
        raise SystemExit(1)


@cli.command("generate", help="Generate a checksum.")
@click.option("-a", "--algorithm", type=click.Choice(sorted(ALGORITHMS)), default="1",
              show_default=True, help="The checksum algorithm to generate (1 = SHA-1).")
@click.argument("file", type=click.Path(path_type=Path))
def generate(algorithm: str, file: Path):
    if not file.is_file():
        click.secho("No such file", fg="red")
        raise SystemExit(1)
    click.echo(digest_file(file, algorithm))


@cli.command("dump", help="Print the parsed metadata tree as JSON.")
@_metadata_options
def dump(metadata: str, strict: bool, max_depth: int | None):
    root = _load(metadata, strict, max_depth)
    click.echo(json.dumps(root.to_dict(), indent=2, ensure_ascii=False))


if __name__ == "__main__":  # pragma: no cover
    cli()
