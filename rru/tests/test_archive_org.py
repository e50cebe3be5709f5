import hashlib
from pathlib import Path

import pytest

from rru.archive_org import (
    CheckReport,
    FileEntry,
    RenameReport,
    Renamer,
    Verifier,
    iter_entries,
    load_metadata,
)
from rru.document import parse
from rru.errors import MetadataError, RenameConflictError

TRACK_DATA = b"track one audio"
NOTES_DATA = b"liner notes"


def _sha1(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def _make_metadata(tmp_path: Path) -> Path:
    xml = f"""<?xml version="1.0" encoding="UTF-8"?>
<files>
  <file name="track01.mp3" source="original">
    <title>Opening</title>
    <format>VBR MP3</format>
    <sha1>{_sha1(TRACK_DATA)}</sha1>
  </file>
  <file name="notes.txt" source="original">
    <format>Text</format>
    <sha1>{_sha1(NOTES_DATA)}</sha1>
  </file>
  <file name="item_meta.xml" source="metadata">
    <format>Metadata</format>
  </file>
  <file name="item_archive.torrent" source="derivative">
    <format>Metadata</format>
  </file>
</files>
"""
    path = tmp_path / "item_files.xml"
    path.write_text(xml, encoding="utf-8")
    return path


@pytest.fixture()
def item(tmp_path: Path):
    """Metadata tree plus a download directory matching it."""
    root = load_metadata(_make_metadata(tmp_path))
    files = tmp_path / "download"
    files.mkdir()
    (files / "track01.mp3").write_bytes(TRACK_DATA)
    (files / "notes.txt").write_bytes(NOTES_DATA)
    return root, files


def test_iter_entries_skips_generated_files(item):
    root, _ = item
    entries = list(iter_entries(root))
    assert [e.name for e in entries] == ["track01.mp3", "notes.txt"]
    assert entries[0].title == "Opening"
    assert entries[0].format == "VBR MP3"
    assert entries[1].title is None


def test_iter_entries_requires_file_elements():
    with pytest.raises(MetadataError, match="<file>"):
        list(iter_entries(parse("<files><dir/></files>")))


def test_iter_entries_requires_format():
    with pytest.raises(MetadataError, match="<format>"):
        list(iter_entries(parse('<files><file name="a" source="original"/></files>')))


def test_load_metadata_checks_root(tmp_path: Path):
    path = tmp_path / "bad.xml"
    path.write_text("<metadata/>", encoding="utf-8")
    with pytest.raises(MetadataError, match="root element"):
        load_metadata(path)


@pytest.mark.parametrize(
    "title, name, expected",
    [
        ("Opening", "track01.mp3", "Opening.mp3"),
        ("Opening.mp3", "track01.mp3", "Opening.mp3"),
        ("AC/DC", "t.flac", "AC_DC.flac"),
        (None, "t.flac", None),
    ],
)
def test_title_name(title, name, expected):
    assert FileEntry(name=name, source="original", format="x", title=title).title_name() == expected


def test_reports_add_up():
    total = RenameReport(1, 2, 3) + RenameReport(renamed=1)
    assert total == RenameReport(2, 2, 3)
    assert total.total == 7
    check = CheckReport()
    check += CheckReport(passed=2, missing=1)
    assert check.total == 3


def test_rename_to_title_and_back(item):
    root, files = item

    report = Renamer(files, to_title=True).run(root)
    assert report == RenameReport(renamed=1, untouched=1, missing=0)
    assert (files / "Opening.mp3").read_bytes() == TRACK_DATA
    assert not (files / "track01.mp3").exists()

    # already renamed: nothing left to do
    assert Renamer(files, to_title=True).run(root) == RenameReport(untouched=2)

    report = Renamer(files, to_title=False).run(root)
    assert report.renamed == 1
    assert (files / "track01.mp3").exists()
    assert not (files / "Opening.mp3").exists()


def test_rename_reports_missing(item):
    root, files = item
    (files / "notes.txt").unlink()
    (files / "track01.mp3").unlink()
    assert Renamer(files).run(root) == RenameReport(missing=2)


def test_rename_conflict(item):
    root, files = item
    (files / "Opening.mp3").write_bytes(b"other")
    with pytest.raises(RenameConflictError):
        Renamer(files).run(root)


def test_rename_prints_status(item, capsys):
    root, files = item
    Renamer(files).run(root)
    out = capsys.readouterr().out
    assert "RENAMED ... 'track01.mp3' => 'Opening.mp3'" in out
    assert "UNTOUCHED ... 'notes.txt'" in out


def test_verify_passes(item):
    root, files = item
    assert Verifier(files).run(root) == CheckReport(passed=2)


def test_verify_failed_and_missing(item):
    root, files = item
    (files / "track01.mp3").write_bytes(b"corrupted")
    (files / "notes.txt").unlink()
    assert Verifier(files).run(root) == CheckReport(failed=1, missing=1)


def test_verify_finds_renamed_files(item):
    root, files = item
    (files / "track01.mp3").rename(files / "Opening.mp3")
    assert Verifier(files).run(root).passed == 2


def test_verify_can_rename_passing_files(item):
    root, files = item
    report = Verifier(files, rename_to_title=True).run(root)
    assert report.passed == 2
    assert (files / "Opening.mp3").exists()
    assert not (files / "track01.mp3").exists()


def test_verify_requires_checksum(tmp_path: Path):
    root = parse('<files><file name="a.mp3" source="original"><format>MP3</format></file></files>')
    with pytest.raises(MetadataError, match="sha1"):
        Verifier(tmp_path).run(root)
