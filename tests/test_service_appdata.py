"""Tests for services/appdata.py: appDataFolder listing, lookup, read, write, delete."""
import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from gdrive_appdata.models.files import FileMetadata
from gdrive_appdata.services.appdata import AppDataService, build_multipart_body


def _resp(json_data=None, text=""):
    r = MagicMock()
    r.json.return_value = json_data if json_data is not None else {}
    r.text = text
    return r


@pytest.fixture
def client():
    c = MagicMock()
    c.get = AsyncMock(return_value=_resp({"files": []}))
    c.delete = AsyncMock(return_value=_resp())
    c.request = AsyncMock(return_value=_resp({"id": "new-id", "name": "x"}))
    return c


@pytest.fixture
def service(client):
    return AppDataService(client)


def _found(file_id="abc", name="notes.txt"):
    return _resp({"files": [{"id": file_id, "name": name}]})


# ── list / lookup ────────────────────────────────────────────────────

def test_list_files(service, client):
    client.get.return_value = _resp({"files": [
        {"id": "1", "name": "a.txt", "modifiedTime": "2026-01-01T00:00:00Z", "size": "12"},
    ]})
    files = asyncio.run(service.list_files())

    assert files[0].name == "a.txt"
    assert files[0].size == 12
    params = client.get.call_args[1]["params"]
    assert params["spaces"] == "appDataFolder"
    assert params["fields"] == "files(id, name, modifiedTime, size)"


def test_get_file_id_not_found(service):
    assert asyncio.run(service.get_file_id_by_name("foo.txt")) is None


def test_get_file_id_found(service, client):
    client.get.return_value = _found("123", "foo.txt")
    assert asyncio.run(service.get_file_id_by_name("foo.txt")) == "123"


def test_get_file_id_escapes_quotes(service, client):
    asyncio.run(service.get_file_id_by_name("it's.txt"))
    params = client.get.call_args[1]["params"]
    assert "name='it\\'s.txt'" in params["q"]
    assert "trashed=false" in params["q"]
    assert params["pageSize"] == 1


# ── read ─────────────────────────────────────────────────────────────

def test_read_missing_returns_empty(service):
    assert asyncio.run(service.read_text_file("missing.txt")) == ""


def test_read_returns_content(service, client):
    client.get.side_effect = [_found("abc"), _resp(text="content")]
    content = asyncio.run(service.read_text_file("bar.txt"))

    assert content == "content"
    path = client.get.call_args_list[1][0][0]
    assert path == "drive/v3/files/abc"
    assert client.get.call_args_list[1][1]["params"] == {"alt": "media"}


# ── write ────────────────────────────────────────────────────────────

def test_create_when_not_found(service, client):
    asyncio.run(service.create_or_overwrite_text_file("new.txt", "hello"))

    method, path = client.request.call_args[0]
    kwargs = client.request.call_args[1]
    assert method == "POST"
    assert path == "upload/drive/v3/files"
    assert kwargs["params"] == {"uploadType": "multipart"}
    assert kwargs["content_type"].startswith("multipart/related; boundary=")
    assert '"parents": ["appDataFolder"]' in kwargs["content"]
    assert "hello" in kwargs["content"]


def test_overwrite_when_found(service, client):
    client.get.return_value = _found("abc")
    asyncio.run(service.create_or_overwrite_text_file("notes.txt", "v2"))

    method, path = client.request.call_args[0]
    assert method == "PATCH"
    assert path == "upload/drive/v3/files/abc"
    assert "parents" not in client.request.call_args[1]["content"]


def test_update_missing_raises(service):
    with pytest.raises(FileNotFoundError, match="File not found: ghost.txt"):
        asyncio.run(service.update_text_file("ghost.txt", "x"))


def test_update_quotes_file_id(service, client):
    client.get.return_value = _found("a/b")
    asyncio.run(service.update_text_file("notes.txt", "x"))
    assert client.request.call_args[0][1] == "upload/drive/v3/files/a%2Fb"


# ── delete ───────────────────────────────────────────────────────────

def test_delete_missing_returns_false(service, client):
    assert asyncio.run(service.delete_file("ghost.txt")) is False
    client.delete.assert_not_called()


def test_delete_found(service, client):
    client.get.return_value = _found("abc")
    assert asyncio.run(service.delete_file("notes.txt")) is True
    client.delete.assert_called_once_with("drive/v3/files/abc")


# ── multipart body ───────────────────────────────────────────────────

def test_multipart_body_layout():
    boundary, body = build_multipart_body(FileMetadata(name="a.txt", parents=["appDataFolder"]), "line1\nline2")

    parts = body.split(f"\r\n--{boundary}")
    assert parts[0] == ""
    assert parts[-1] == "--"
    meta = json.loads(parts[1].split("\r\n\r\n", 1)[1])
    assert meta == {"name": "a.txt", "parents": ["appDataFolder"], "mimeType": "text/plain"}
    assert parts[2].endswith("line1\nline2")


def test_multipart_boundaries_are_unique():
    first, _ = build_multipart_body(FileMetadata(name="a"), "")
    second, _ = build_multipart_body(FileMetadata(name="a"), "")
    assert first != second
