"""Text file operations in the Drive appDataFolder space."""

from __future__ import annotations

import json
import secrets
from urllib.parse import quote

from gdrive_appdata.client import DRIVE_FILES_PATH, DRIVE_UPLOAD_PATH, AppDataClient
from gdrive_appdata.models.files import AppDataFile, FileMetadata

APPDATA_SPACE = "appDataFolder"


class AppDataService:
    """List, read, write and delete text files by name."""

    def __init__(self, client: AppDataClient) -> None:
        self._client = client

    async def list_files(self) -> list[AppDataFile]:
        response = await self._client.get(
            DRIVE_FILES_PATH,
            params={"spaces": APPDATA_SPACE, "fields": "files(id, name, modifiedTime, size)"},
        )
        return [AppDataFile(**f) for f in response.json().get("files", [])]

    async def get_file_id_by_name(self, name: str) -> str | None:
        """Return the id of the first non-trashed file named ``name``."""
        escaped = name.replace("'", "\\'")
        query = f"name='{escaped}' and '{APPDATA_SPACE}' in parents and trashed=false"
        response = await self._client.get(
            DRIVE_FILES_PATH,
            params={"spaces": APPDATA_SPACE, "q": query, "fields": "files(id, name)", "pageSize": 1},
        )
        files = response.json().get("files") or []
        return files[0]["id"] if files else None

    async def read_text_file(self, name: str) -> str:
        """Return file contents, or an empty string when the file does not exist."""
        file_id = await self.get_file_id_by_name(name)
        if not file_id:
            return ""
        response = await self._client.get(f"{DRIVE_FILES_PATH}/{quote(file_id, safe='')}", params={"alt": "media"})
        return response.text or ""

    async def create_or_overwrite_text_file(self, name: str, content: str) -> dict:
        file_id = await self.get_file_id_by_name(name)
        if file_id:
            return await self._upload("PATCH", file_id, FileMetadata(name=name), content)
        return await self._upload("POST", None, FileMetadata(name=name, parents=[APPDATA_SPACE]), content)

    async def update_text_file(self, name: str, content: str) -> dict:
        file_id = await self.get_file_id_by_name(name)
        if not file_id:
            raise FileNotFoundError(f"File not found: {name}")
        return await self._upload("PATCH", file_id, FileMetadata(name=name), content)

    async def delete_file(self, name: str) -> bool:
        """Delete a file by name. Returns False if there was nothing to delete."""
        file_id = await self.get_file_id_by_name(name)
        if not file_id:
            return False
        await self._client.delete(f"{DRIVE_FILES_PATH}/{quote(file_id, safe='')}")
        return True

    async def _upload(self, method: str, file_id: str | None, metadata: FileMetadata, content: str) -> dict:
        path = DRIVE_UPLOAD_PATH
        if file_id:
            path += "/" + quote(file_id, safe="")
        boundary, body = build_multipart_body(metadata, content)
        response = await self._client.request(
            method,
            path,
            params={"uploadType": "multipart"},
            content=body,
            content_type=f"multipart/related; boundary={boundary}",
        )
        return response.json()


def build_multipart_body(metadata: FileMetadata, content: str) -> tuple[str, str]:
    """Build a multipart/related body: JSON metadata part, then the text part."""
    boundary = "appdata_" + secrets.token_hex(8)
    delimiter = f"\r\n--{boundary}\r\n"
    close_delim = f"\r\n--{boundary}--"
    body = (
        delimiter
        + "Content-Type: application/json; charset=UTF-8\r\n\r\n"
        + json.dumps(metadata.model_dump(by_alias=True, exclude_none=True))
        + delimiter
        + "Content-Type: text/plain; charset=UTF-8\r\n\r\n"
        + content
        + close_delim
    )
    return boundary, body
