"""
Download adapter — HTTPS fetches and archive extraction.

Fetches small text endpoints (latest-version probes), streams release
files to disk, and unpacks tar/zip archives into user-owned directories.
Unauthenticated, no checksum verification.
"""

from __future__ import annotations

import logging
import shutil
import stat
import tarfile
import time
import urllib.request
import zipfile
from pathlib import Path
from urllib.parse import urlparse

from osintvm import __version__
from osintvm.adapters.base import Adapter, ExecutionContext, require_operation
from osintvm.core.models.action import Receipt

logger = logging.getLogger(__name__)

_USER_AGENT = f"osintvm/{__version__}"
_CHUNK = 1024 * 64


def filename_from_url(url: str) -> str:
    """Last path segment of a URL (query string ignored)."""
    name = Path(urlparse(url).path).name
    return name or "download"


def _open(url: str, timeout: int | None):
    req = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
    if timeout is None:
        return urllib.request.urlopen(req)
    return urllib.request.urlopen(req, timeout=timeout)


def extract_archive(archive: Path, dest: Path) -> list[str]:
    """Unpack a .tar.* / .tgz / .zip archive into ``dest``.

    Returns the top-level entry names that were extracted.
    """
    dest.mkdir(parents=True, exist_ok=True)
    if zipfile.is_zipfile(archive):
        with zipfile.ZipFile(archive) as zf:
            names = zf.namelist()
            zf.extractall(dest)
            # zipfile drops unix permission bits; restore the executable ones
            for info in zf.infolist():
                mode = (info.external_attr >> 16) & 0o777
                if mode & stat.S_IXUSR:
                    (dest / info.filename).chmod(mode)
    elif tarfile.is_tarfile(archive):
        with tarfile.open(archive) as tf:
            names = tf.getnames()
            tf.extractall(dest, filter="data")
    else:
        raise ValueError(f"Unsupported archive format: {archive.name}")

    return sorted({n.split("/", 1)[0] for n in names if n and n != "."})


class DownloadAdapter(Adapter):
    """HTTP downloads and archive handling.

    Action params:
        operation (str): One of 'fetch_text', 'download', 'extract'.
        url (str): Source URL ('fetch_text', 'download').
        dest (str): Destination file for 'download' (a directory gets the
                    URL's file name); destination directory for 'extract'.
        executable (bool): chmod +x the downloaded file ('download').
        archive (str): Archive path ('extract').
        remove_archive (bool): Delete the archive after extracting
                               (default: True).
    """

    _VALID_OPS = {"fetch_text", "download", "extract"}

    @property
    def name(self) -> str:
        return "download"

    def is_available(self) -> bool:
        return True  # stdlib HTTP client

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        ok, msg = require_operation(context, self._VALID_OPS)
        if not ok:
            return ok, msg

        params = context.action.params
        operation = params["operation"]
        if operation in ("fetch_text", "download"):
            url = params.get("url", "")
            if not url:
                return False, f"Missing required param: 'url' for {operation} operation"
            if urlparse(url).scheme not in ("http", "https"):
                return False, f"Unsupported URL scheme: {url}"
        if operation in ("download", "extract") and not params.get("dest"):
            return False, f"Missing required param: 'dest' for {operation} operation"
        if operation == "extract" and not params.get("archive"):
            return False, "Missing required param: 'archive' for extract operation"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.action.params["operation"]
        start = time.monotonic()
        try:
            if operation == "fetch_text":
                receipt = self._fetch_text(context)
            elif operation == "download":
                receipt = self._download(context)
            else:
                receipt = self._extract(context)
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Download error: {e}",
                metadata={"operation": operation, "url": context.action.params.get("url")},
            )
        receipt.duration_ms = int((time.monotonic() - start) * 1000)
        return receipt

    # ── Operations ──────────────────────────────────────────────

    def _fetch_text(self, ctx: ExecutionContext) -> Receipt:
        url = ctx.action.params["url"]
        with _open(url, ctx.timeout) as resp:
            text = resp.read().decode("utf-8", errors="replace")
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=text.strip(),
            metadata={"url": url},
        )

    def _download(self, ctx: ExecutionContext) -> Receipt:
        url = ctx.action.params["url"]
        dest = Path(ctx.action.params["dest"]).expanduser()
        if dest.is_dir():
            dest = dest / filename_from_url(url)
        dest.parent.mkdir(parents=True, exist_ok=True)

        logger.debug("Downloading %s → %s", url, dest)
        with _open(url, ctx.timeout) as resp, dest.open("wb") as f:
            shutil.copyfileobj(resp, f, _CHUNK)

        if ctx.action.params.get("executable"):
            dest.chmod(dest.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

        size = dest.stat().st_size
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=str(dest),
            metadata={"url": url, "path": str(dest), "size_bytes": size},
        )

    def _extract(self, ctx: ExecutionContext) -> Receipt:
        archive = Path(ctx.action.params["archive"]).expanduser()
        dest = Path(ctx.action.params["dest"]).expanduser()
        if not archive.is_file():
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error=f"Archive not found: {archive}",
            )

        entries = extract_archive(archive, dest)
        if ctx.action.params.get("remove_archive", True):
            archive.unlink()

        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output="\n".join(entries),
            metadata={"archive": str(archive), "dest": str(dest), "entries": entries},
        )
