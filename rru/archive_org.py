"""archive.org ``*_files.xml`` metadata: batch renaming and integrity checks.

The metadata export looks like::

    <files>
      <file name="track01.mp3" source="original">
        <title>Opening</title>
        <format>VBR MP3</format>
        <sha1>2fd4e1c67a2d28fced849ee1bb76e7391b93eb12</sha1>
      </file>
      <file name="item_meta.xml" source="metadata">
        <format>Metadata</format>
      </file>
    </files>

Entries generated by archive.org itself (``source="metadata"`` or format
``Metadata``) are skipped, they are never part of a download.  A file's
*title name* is its ``<title>`` with the extension of its original name, so
``track01.mp3`` titled ``Opening`` becomes ``Opening.mp3``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import click

from .checksum import sha1_file
from .document import DocumentNode, parse
from .errors import MetadataError, RenameConflictError
from .events import ReaderConfig
from .retrieve import DEFAULT_TIMEOUT, retrieve_text

__all__ = [
    "FileEntry",
    "RenameReport",
    "CheckReport",
    "Renamer",
    "Verifier",
    "load_metadata",
    "iter_entries",
    "print_summary",
]

logger = logging.getLogger(__name__)

ROOT_ELEMENT = "files"
FILE_ELEMENT = "file"


@dataclass(frozen=True)
class FileEntry:
    """One downloadable ``<file>`` of an archive.org item."""

    name: str
    source: str
    format: str
    title: Optional[str] = None
    sha1: Optional[str] = None

    def title_name(self) -> Optional[str]:
        """Return the title-based file name, or ``None`` without a title."""
        if not self.title:
            return None
        # a title is a display string; keep it from turning into sub-directories
        title = self.title.replace("/", "_").replace("\\", "_")
        return Path(title).with_suffix(Path(self.name).suffix).name


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@dataclass
class RenameReport:
    renamed: int = 0
    untouched: int = 0
    missing: int = 0

    @property
    def total(self) -> int:
        return self.renamed + self.untouched + self.missing

    def __add__(self, other: "RenameReport") -> "RenameReport":
        return RenameReport(
            self.renamed + other.renamed,
            self.untouched + other.untouched,
            self.missing + other.missing,
        )

    def summary(self) -> List[Tuple[str, int]]:
        return [
            ("Renamed files", self.renamed),
            ("Untouched files", self.untouched),
            ("Missing files", self.missing),
            ("Total checks", self.total),
        ]


@dataclass
class CheckReport:
    passed: int = 0
    failed: int = 0
    missing: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.missing

    def __add__(self, other: "CheckReport") -> "CheckReport":
        return CheckReport(
            self.passed + other.passed,
            self.failed + other.failed,
            self.missing + other.missing,
        )

    def summary(self) -> List[Tuple[str, int]]:
        return [
            ("Passed files", self.passed),
            ("Failed files", self.failed),
            ("Missing files", self.missing),
            ("Total checks", self.total),
        ]


def print_summary(report: RenameReport | CheckReport) -> None:
    click.echo()
    click.echo("SUMMARY:")
    for label, value in report.summary():
        click.echo(f"    {label}: {value}")


def _quick_report(status: str, color: str, old: str, new: str | None = None) -> None:
    click.secho(status, fg=color, nl=False)
    if new is None:
        click.echo(f" ... '{old}'")
    else:
        click.echo(f" ... '{old}' => '{new}'")


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


def load_metadata(
    location: str | Path,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    config: ReaderConfig | None = None,
    strict: bool = False,
    max_depth: int | None = None,
) -> DocumentNode:
    """Retrieve and parse the files metadata at *location*."""
    root = parse(retrieve_text(location, timeout=timeout), config=config, strict=strict, max_depth=max_depth)
    if root.name != ROOT_ELEMENT:
        raise MetadataError(
            f"invalid archive.org xml root element: expected <{ROOT_ELEMENT}>, found <{root.name}>"
        )
    logger.info("Loaded %d file entries from %s", len(root.children), location)
    return root


def iter_entries(root: DocumentNode) -> Iterator[FileEntry]:
    """Yield the downloadable entries of a ``<files>`` tree."""
    for node in root.children:
        if node.name != FILE_ELEMENT:
            raise MetadataError(f"expected <{FILE_ELEMENT}> element, found <{node.name}>")
        fmt = node.require_child("format").value or ""
        source = node.require_attrib("source")
        if fmt == "Metadata" or source == "metadata":
            continue
        title = node.get_child("title")
        sha1 = node.get_child("sha1")
        yield FileEntry(
            name=node.require_attrib("name"),
            source=source,
            format=fmt,
            title=title.value if title is not None else None,
            sha1=sha1.value if sha1 is not None else None,
        )


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


class Renamer:
    """Rename downloaded files between their source names and titles.

    Parameters
    ----------
    files_path: Path
        Directory holding the downloaded files.
    to_title: bool, default ``True``
        Rename source names to titles; ``False`` renames titles back.
    """

    def __init__(self, files_path: Path | str, *, to_title: bool = True):
        self.files_path = Path(files_path)
        self.to_title = to_title

    def run(self, root: DocumentNode) -> RenameReport:
        report = RenameReport()
        for entry in iter_entries(root):
            old_path = self.files_path / entry.name
            title_name = entry.title_name()
            if title_name is None:
                report += self._rename(old_path, None)
                continue

            new_path = self.files_path / title_name
            if not self.to_title:
                old_path, new_path = new_path, old_path
            report += self._rename(old_path, new_path)
        return report

    def _rename(self, old_path: Path, new_path: Path | None) -> RenameReport:
        report = RenameReport()
        if new_path is None:
            if old_path.is_file():
                report.untouched += 1
                _quick_report("UNTOUCHED", "green", old_path.name)
            else:
                report.missing += 1
                _quick_report("MISSING", "red", old_path.name)
            return report

        if old_path.is_file():
            if new_path.is_file():
                raise RenameConflictError(
                    f"Cannot rename {old_path.name} as the new name already exists at {new_path.name}"
                )
            old_path.rename(new_path)
            logger.debug("Renamed %s -> %s", old_path, new_path)
            report.renamed += 1
            _quick_report("RENAMED", "green", old_path.name, new_path.name)
        elif new_path.is_file():
            report.untouched += 1
            _quick_report("UNTOUCHED", "green", new_path.name)
        else:
            report.missing += 1
            _quick_report("MISSING", "red", old_path.name)
        return report


class Verifier:
    """Compare downloaded files against the SHA-1 digests in the metadata.

    A file is looked up under its source name first, then under its title
    name (it may have been renamed by :class:`Renamer` already).  With
    *rename_to_title* every file that passes is moved to its title name.
    """

    def __init__(self, files_path: Path | str, *, rename_to_title: bool = False):
        self.files_path = Path(files_path)
        self.rename_to_title = rename_to_title

    def run(self, root: DocumentNode) -> CheckReport:
        report = CheckReport()
        for entry in iter_entries(root):
            report += self._check(entry)
        return report

    def _locate(self, entry: FileEntry) -> Optional[Path]:
        candidates = [entry.name]
        title_name = entry.title_name()
        if title_name is not None:
            candidates.append(title_name)
        for name in candidates:
            path = self.files_path / name
            if path.is_file():
                return path
        return None

    def _check(self, entry: FileEntry) -> CheckReport:
        report = CheckReport()
        if not entry.sha1:
            raise MetadataError(f"expected <sha1> inside <file name='{entry.name}'>, found none")

        path = self._locate(entry)
        if path is None:
            report.missing += 1
            _quick_report("MISSING", "red", entry.name)
            return report

        digest = sha1_file(path)
        if digest != entry.sha1.strip().lower():
            logger.debug("%s: expected sha1 %s, found %s", path.name, entry.sha1, digest)
            report.failed += 1
            _quick_report("FAILED", "red", path.name)
            return report

        report.passed += 1
        title_name = entry.title_name()
        if self.rename_to_title and title_name is not None and path.name != title_name:
            target = self.files_path / title_name
            if target.exists():
                raise RenameConflictError(
                    f"Cannot rename {path.name} as the new name already exists at {target.name}"
                )
            path.rename(target)
            _quick_report("PASSED", "green", path.name, target.name)
        else:
            _quick_report("PASSED", "green", path.name)
        return report
