from pathlib import Path

import pytest
import requests

from rru import retrieve
from rru.archive_org import iter_entries, load_metadata
from rru.errors import RetrievalError
from rru.retrieve import retrieve_text


class _FakeResponse:
    def __init__(self, text: str, status: int = 200):
        self.text = text
        self.status_code = status
        self.headers = {}
        self.encoding = None

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")


def test_reads_local_file(tmp_path: Path):
    path = tmp_path / "item_files.xml"
    path.write_text("<files/>", encoding="utf-8")
    assert retrieve_text(path) == "<files/>"
    assert retrieve_text(str(path)) == "<files/>"


def test_fetches_url(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return _FakeResponse("<files/>")

    monkeypatch.setattr(retrieve.requests, "get", fake_get)
    text = retrieve_text("https://archive.org/download/item/item_files.xml", timeout=5)
    assert text == "<files/>"
    assert calls == [("https://archive.org/download/item/item_files.xml", 5)]


def test_http_error(monkeypatch):
    monkeypatch.setattr(retrieve.requests, "get", lambda url, timeout: _FakeResponse("", 404))
    with pytest.raises(RetrievalError, match="404"):
        retrieve_text("https://archive.org/download/missing/missing_files.xml")


def test_connection_error(monkeypatch):
    def fake_get(url, timeout):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(retrieve.requests, "get", fake_get)
    with pytest.raises(RetrievalError, match="refused"):
        retrieve_text("http://localhost:1/files.xml")


def test_missing_file_is_not_a_url(tmp_path: Path):
    with pytest.raises(RetrievalError, match="No such file"):
        retrieve_text(tmp_path / "nope.xml")


def _utf8_response(content_type: str) -> requests.Response:
    response = requests.Response()
    response.status_code = 200
    response.headers["Content-Type"] = content_type
    response._content = (
        '<files><file name="a.mp3" source="original"><title>Café</title>'
        "<format>VBR MP3</format></file></files>"
    ).encode("utf-8")
    return response


def test_charsetless_response_is_decoded_as_utf8(monkeypatch):
    monkeypatch.setattr(retrieve.requests, "get", lambda url, timeout: _utf8_response("text/xml"))
    root = load_metadata("https://archive.org/download/item/item_files.xml")
    assert next(iter_entries(root)).title == "Café"


def test_declared_charset_is_respected(monkeypatch):
    response = _utf8_response("text/xml; charset=ISO-8859-1")
    monkeypatch.setattr(retrieve.requests, "get", lambda url, timeout: response)
    text = retrieve_text("https://archive.org/download/item/item_files.xml")
    assert "CafÃ©" in text
