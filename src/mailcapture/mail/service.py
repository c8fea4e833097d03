"""Read API facade over captured mail.

Resolves bucket listings and message lookups against the files written by
the ingestion pipeline. Nothing here mutates storage or takes locks.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from ..domain.mail.buckets import bucket_name, current_bucket
from ..infrastructure.storage.recipient_store import RecipientStore
from ..infrastructure.storage.weekly_index import WeeklyIndexManager
from .schemas import MessageLink, SummaryView

logger = logging.getLogger(__name__)

UNSAFE_FILENAME_CHARS = ("/", "\\", "\x00")


def is_safe_filename(filename: str) -> bool:
    """True for a plain name inside the recipient folder (no separators or dot names)."""
    if not filename or filename in (".", ".."):
        return False
    return not any(char in filename for char in UNSAFE_FILENAME_CHARS)


class MailReader:
    """Read-only access to weekly indexes and stored artifacts."""

    def __init__(
        self,
        store: RecipientStore,
        index_manager: WeeklyIndexManager,
        api_prefix: str = "/api",
    ):
        self.store = store
        self.index_manager = index_manager
        self.api_prefix = api_prefix.rstrip("/")

    def message_href(self, domain: str, username: str, filename: str) -> str:
        return (
            f"{self.api_prefix}/mail/{quote(domain, safe='')}"
            f"/{quote(username, safe='')}/{quote(filename, safe='')}"
        )

    async def list_bucket(self, year: int, week: int) -> List[Dict[str, Any]]:
        """Summaries of one week, newest first, with links instead of paths.

        An absent bucket yields an empty list.
        """
        index = await self.index_manager.load(bucket_name(year, week))

        views = []
        for summary in index.messages:
            recipient = Path(summary.recipient_folder_path).name
            username, _, domain = recipient.partition("@")
            view = SummaryView(
                **summary.model_dump(exclude={"recipient_folder_path"}),
                recipient=recipient,
                message=MessageLink(href=self.message_href(domain, username, summary.filename)),
            )
            views.append(view.to_wire())
        return views

    @staticmethod
    def current_bucket() -> Tuple[int, int]:
        """(year, week) of the current UTC ISO week."""
        return current_bucket()

    async def fetch_message(
        self,
        domain: str,
        username: str,
        filename: str,
    ) -> Optional[Dict[str, Any]]:
        """Load a stored artifact.

        Any failure (unknown recipient, missing file, unparseable content,
        unsafe filename) is reported as not found.

        Returns:
            Optional[dict]: Artifact content with lookup keys, or None
        """
        if not is_safe_filename(filename):
            return None

        folder = Path(self.store.recipient_folder(f"{username}@{domain}"))
        try:
            content = json.loads(await self.store.read_artifact(folder / filename))
        except (OSError, ValueError):
            return None

        if not isinstance(content, dict):
            return None
        return {"domain": domain, "username": username, "messageFilename": filename, **content}
