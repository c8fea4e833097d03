"""Recipient Store - on-disk layout for captured messages.

Layout:
    <mail_root>/<sanitized recipient>/<ISO timestamp>-<message id>.raw
    <mail_root>/<sanitized recipient>/<ISO timestamp>-<message id>.json|.err

Recipient folders only ever receive new files, so concurrent messages for the
same recipient need no locking.
"""

import asyncio
import logging
from pathlib import Path
from typing import Union

import aiofiles

from .sanitize import sanitize_filename

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class RecipientStore:
    """Filesystem adapter for per-recipient artifacts."""

    def __init__(self, mail_root: PathLike):
        self.mail_root = Path(mail_root)

    def recipient_folder(self, address: str) -> str:
        """Storage key for a recipient, ``<mail_root>/<sanitized>/``.

        Args:
            address: Recipient address as given in the envelope

        Returns:
            str: Folder path with a trailing slash
        """
        return f"{(self.mail_root / sanitize_filename(address)).as_posix()}/"

    async def ensure_directory(self, path: PathLike) -> None:
        """Create a directory and any missing parents (idempotent)."""
        await asyncio.to_thread(Path(path).mkdir, parents=True, exist_ok=True)

    def open_raw(self, path: PathLike):
        """Async binary writer for a raw capture file."""
        return aiofiles.open(Path(path), "wb")

    async def write_artifact(self, path: PathLike, body: str) -> None:
        """Write a text artifact.

        Raises:
            OSError: If the file cannot be written
        """
        async with aiofiles.open(Path(path), "w", encoding="utf-8") as f:
            await f.write(body)
        logger.debug(f"Wrote artifact {path}")

    async def read_artifact(self, path: PathLike) -> str:
        """Read a text artifact.

        Raises:
            OSError: If the file cannot be read
        """
        async with aiofiles.open(Path(path), "r", encoding="utf-8") as f:
            return await f.read()
