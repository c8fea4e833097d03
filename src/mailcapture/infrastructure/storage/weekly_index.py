"""Weekly Index Manager - time-bucketed message index.

Each ISO week has one JSON file, ``<mail_root>/w<week>-<year>.json``, holding
``{name, messages}`` with the newest summary first. Updates are full
read-modify-write cycles serialized per bucket name; different buckets are
updated independently.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Union

import aiofiles

from ...domain.mail.buckets import bucket_name_for
from ...domain.mail.models import TransactionSummary, WeeklyIndex
from ...observability.metrics import index_updates_total
from .keyed_lock import KeyedLock

logger = logging.getLogger(__name__)


class IndexStorageError(Exception):
    """Raised when a weekly index cannot be persisted."""
    pass


class WeeklyIndexManager:
    """Loads, updates and persists weekly indexes.

    Example:
        manager = WeeklyIndexManager("mail")
        index = await manager.append_summary(summary)
        assert index.messages[0] is summary
    """

    def __init__(self, mail_root: Union[str, Path]):
        self.mail_root = Path(mail_root)
        self._locks = KeyedLock()

    def index_path(self, name: str) -> Path:
        return self.mail_root / f"{name}.json"

    async def load(self, name: str) -> WeeklyIndex:
        """Load a bucket, falling back to an empty one.

        A missing, unreadable or malformed file is not an error: the bucket is
        treated as not created yet.
        """
        try:
            async with aiofiles.open(self.index_path(name), "r", encoding="utf-8") as f:
                data = await f.read()
            return WeeklyIndex.model_validate_json(data)
        except (OSError, ValueError):
            logger.info(f"No index found for {name}.", extra={"bucket": name})
            return WeeklyIndex(name=name)

    async def save(self, index: WeeklyIndex) -> None:
        """Overwrite a bucket file atomically (.tmp + rename).

        Raises:
            IndexStorageError: If the file cannot be written
        """
        final_path = self.index_path(index.name)
        tmp_path = final_path.with_name(f"{final_path.name}.tmp")
        try:
            await asyncio.to_thread(self.mail_root.mkdir, parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(index.to_json())
            await asyncio.to_thread(os.replace, tmp_path, final_path)
        except OSError as e:
            raise IndexStorageError(f"Failed to save index {index.name}: {e}") from e

    async def append_summary(self, summary: TransactionSummary) -> WeeklyIndex:
        """Prepend a summary to the bucket of its processing time.

        Args:
            summary: Completed transaction summary

        Returns:
            WeeklyIndex: The persisted bucket

        Raises:
            IndexStorageError: If the updated bucket cannot be written
        """
        name = bucket_name_for(summary.processed_at)
        async with self._locks.acquire(name):
            existing = await self.load(name)
            updated = WeeklyIndex(name=name, messages=[summary, *existing.messages])
            try:
                await self.save(updated)
            except IndexStorageError:
                index_updates_total.labels(status="error").inc()
                raise

        index_updates_total.labels(status="success").inc()
        logger.info(
            f"Index {name} now lists {len(updated.messages)} messages",
            extra={"bucket": name, "message_id": summary.message_id},
        )
        return updated
