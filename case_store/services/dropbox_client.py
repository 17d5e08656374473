import json
import logging
import os
from dataclasses import dataclass

import httpx
from dotenv import load_dotenv

from ..errors import StoreUnavailableError, WriteConflictError

DROPBOX_CONTENT_BASE = "https://content.dropboxapi.com/2"

log = logging.getLogger(__name__)


@dataclass
class RemoteFile:
    content: bytes
    rev: str | None = None


def _error_summary(r: httpx.Response) -> str:
    """Dropbox puts a machine-readable path like ``path/not_found/..`` in error_summary."""
    try:
        return str(r.json().get("error_summary") or "")
    except ValueError:
        return ""


class DropboxClient:
    """Whole-file download and upload against the Dropbox content API."""

    def __init__(self, access_token: str | None = None, timeout: float = 30):
        if access_token is None:
            load_dotenv()
            access_token = os.getenv("DROPBOX_ACCESS_TOKEN")
        self.access_token = access_token
        self.timeout = timeout

    def _headers(self, api_arg: dict) -> dict:
        if not self.access_token:
            raise StoreUnavailableError("DROPBOX_ACCESS_TOKEN not configured")
        return {
            "Authorization": f"Bearer {self.access_token}",
            # Header values must be ASCII; json.dumps escapes the rest.
            "Dropbox-API-Arg": json.dumps(api_arg),
        }

    def _post(self, endpoint: str, headers: dict, content: bytes | None = None) -> httpx.Response:
        url = f"{DROPBOX_CONTENT_BASE}/{endpoint}"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                return client.post(url, headers=headers, content=content)
        except httpx.HTTPError as e:
            raise StoreUnavailableError(f"Dropbox request failed: {e}") from e

    def download(self, path: str) -> RemoteFile | None:
        """Fetch a file. Returns None when Dropbox reports the path as not found."""
        headers = self._headers({"path": path})
        r = self._post("files/download", headers)
        if r.status_code == 409 and _error_summary(r).startswith("path/not_found"):
            log.debug("Dropbox file %s does not exist", path)
            return None
        if not r.is_success:
            raise StoreUnavailableError(f"Download failed: {r.text}")

        try:
            meta = json.loads(r.headers.get("Dropbox-API-Result") or "{}")
        except ValueError:
            meta = {}
        rev = meta.get("rev") if isinstance(meta, dict) else None
        if not rev:
            # Conditional uploads need the revision of what was read.
            raise StoreUnavailableError(f"Download of {path} returned no file revision")
        log.debug("Downloaded %s (%d bytes, rev=%s)", path, len(r.content), rev)
        return RemoteFile(content=r.content, rev=rev)

    def upload(self, path: str, content: bytes, rev: str | None = None) -> dict:
        """Write a whole file.

        With ``rev`` the upload only succeeds if the file is still at that
        revision. Without it the upload only succeeds if the file does not exist
        yet. Either way a lost race raises WriteConflictError.
        """
        mode = {".tag": "update", "update": rev} if rev else "add"
        headers = self._headers({
            "path": path,
            "mode": mode,
            "autorename": False,
            "mute": True,
        })
        headers["Content-Type"] = "application/octet-stream"
        r = self._post("files/upload", headers, content=content)
        if r.status_code == 409 and _error_summary(r).startswith("path/conflict"):
            raise WriteConflictError(f"{path} was modified concurrently")
        if not r.is_success:
            raise StoreUnavailableError(f"Upload failed: {r.text}")
        meta = r.json()
        log.debug("Uploaded %s (%d bytes, rev=%s)", path, len(content), meta.get("rev"))
        return meta
