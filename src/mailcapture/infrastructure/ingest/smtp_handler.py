"""SMTP Handler for mail capture.

Implements the aiosmtpd handler hooks: the connection policy decides which
connections and recipients are accepted, and every accepted recipient of a
message is ingested into its own folder and listed in the weekly index.

Senders whose message was accepted always receive ``250``; decode, write and
index failures are visible in the logs only.
"""

import asyncio
import logging
import uuid
from typing import Dict, List, Optional
from weakref import WeakKeyDictionary

from aiosmtpd.smtp import SMTP, Envelope, Session

from ...domain.mail.models import TransactionSummary
from ...domain.mail.policy import ConnectionPolicy
from ...observability.metrics import messages_ingested_total, recipients_total
from ...observability.request_id import set_request_id
from ..storage.recipient_store import RecipientStore
from ..storage.weekly_index import IndexStorageError, WeeklyIndexManager
from .ingestor import MessageIngestor, iter_chunks

logger = logging.getLogger(__name__)


class SessionIds:
    """Connection and per-transaction message IDs for SMTP sessions.

    The first message of a connection uses the connection ID itself, later
    messages on the same connection get ``<connection id>.<n>``.
    """

    def __init__(self):
        self._sessions: "WeakKeyDictionary[Session, List]" = WeakKeyDictionary()

    def connection_id(self, session: Session) -> str:
        entry = self._sessions.get(session)
        if entry is None:
            entry = self._sessions[session] = [uuid.uuid4().hex[:16], 0]
        return entry[0]

    def next_message_id(self, session: Session) -> str:
        connection_id = self.connection_id(session)
        entry = self._sessions[session]
        entry[1] += 1
        if entry[1] == 1:
            return connection_id
        return f"{connection_id}.{entry[1]}"


def remote_address(session: Session) -> Optional[str]:
    peer = session.peer
    if isinstance(peer, (tuple, list)) and peer:
        return str(peer[0])
    return str(peer) if peer else None


class MailCaptureSMTPHandler:
    """SMTP handler for mail capture.

    Email processing per accepted recipient:
    1. Derive the recipient folder (sanitized address)
    2. Capture raw bytes and decode them concurrently
    3. Write the decoded JSON or the decode error next to the raw file
    4. On success, prepend the summary to the current weekly index
    """

    def __init__(
        self,
        policy: ConnectionPolicy,
        store: RecipientStore,
        ingestor: MessageIngestor,
        index_manager: WeeklyIndexManager,
        chunk_size: int = 8192,
    ):
        """Initialize SMTP handler.

        Args:
            policy: Connection and recipient acceptance rules
            store: Recipient store for folder naming
            ingestor: Message ingestor
            index_manager: Weekly index manager
            chunk_size: Chunk size used to stream message data
        """
        self.policy = policy
        self.store = store
        self.ingestor = ingestor
        self.index_manager = index_manager
        self.chunk_size = chunk_size
        self.ids = SessionIds()

    async def handle_MAIL(
        self,
        server: SMTP,
        session: Session,
        envelope: Envelope,
        address: str,
        mail_options: List[str],
    ) -> str:
        set_request_id(self.ids.connection_id(session))
        decision = self.policy.decide_connection(remote_address(session))
        if not decision.accepted:
            return f"554 {decision.reason}"

        envelope.mail_from = address
        envelope.mail_options.extend(mail_options)
        return "250 OK"

    async def handle_RCPT(
        self,
        server: SMTP,
        session: Session,
        envelope: Envelope,
        address: str,
        rcpt_options: List[str],
    ) -> str:
        connection_id = self.ids.connection_id(session)
        set_request_id(connection_id)
        decision = self.policy.decide_recipient(address)

        if not decision.accepted:
            recipients_total.labels(decision="rejected").inc()
            logger.info(
                f"Email #{connection_id} to \"{address}\" refused",
                extra={"recipient": address},
            )
            return f"550 {decision.reason}"

        recipients_total.labels(decision="accepted").inc()
        logger.info(
            f"Email #{connection_id} to \"{address}\" accepted",
            extra={"recipient": address},
        )
        envelope.rcpt_tos.append(address)
        envelope.rcpt_options.extend(rcpt_options)
        return "250 OK"

    async def handle_DATA(
        self,
        server: SMTP,
        session: Session,
        envelope: Envelope,
    ) -> str:
        """Handle email DATA command.

        Every distinct recipient folder is ingested once, concurrently with
        the others. Recipients that sanitize to the same folder (repeated
        RCPT TO, ``a:b@x`` and ``a|b@x``) share one copy, since their
        artifacts would carry the same label. The reply is sent once all
        ingestions and index updates have finished.

        Returns:
            str: Always '250 Message accepted'
        """
        message_id = self.ids.next_message_id(session)
        set_request_id(message_id)

        try:
            content = envelope.original_content
            if content is None:
                content = envelope.content or b""
            if isinstance(content, str):
                content = content.encode("utf-8", errors="surrogateescape")

            logger.info(
                f"Received email #{message_id}: from={envelope.mail_from}, "
                f"to={envelope.rcpt_tos}, size={len(content)} bytes",
                extra={"message_id": message_id},
            )

            recipients = self.recipients_by_folder(envelope.rcpt_tos)
            if len(recipients) < len(envelope.rcpt_tos):
                logger.info(
                    f"Email #{message_id}: {len(envelope.rcpt_tos)} recipients share "
                    f"{len(recipients)} folders, storing one copy per folder",
                    extra={"message_id": message_id},
                )

            await asyncio.gather(*(
                self.process_recipient(recipient, message_id, content)
                for recipient in recipients.values()
            ))
        except Exception as e:
            logger.error(f"Unexpected error processing email #{message_id}: {e}", exc_info=True)

        logger.info(f"Done with #{message_id}", extra={"message_id": message_id})
        return "250 Message accepted"

    def recipients_by_folder(self, recipients: List[str]) -> Dict[str, str]:
        """First recipient for each distinct recipient folder, in envelope order."""
        folders: Dict[str, str] = {}
        for recipient in recipients:
            folders.setdefault(self.store.recipient_folder(recipient), recipient)
        return folders

    async def process_recipient(
        self,
        recipient: str,
        message_id: str,
        content: bytes,
    ) -> TransactionSummary:
        """Ingest one message for one recipient and index it on success."""
        folder = self.store.recipient_folder(recipient)
        summary = await self.ingestor.ingest(
            folder,
            message_id,
            iter_chunks(content, self.chunk_size),
        )

        if summary.error:
            messages_ingested_total.labels(outcome="decode_error").inc()
            logger.warning(
                f"Failed to parse email #{message_id}: {summary.error.message}",
                extra={"message_id": message_id, "recipient": recipient},
            )
        elif summary.write_err:
            messages_ingested_total.labels(outcome="write_error").inc()
            logger.error(
                f"Failed to save email #{message_id}: {summary.write_err.message}",
                extra={"message_id": message_id, "recipient": recipient},
            )
        else:
            messages_ingested_total.labels(outcome="saved").inc()
            logger.info(
                f"Email #{message_id} parsed and saved successfully. Updating weekly index...",
                extra={"message_id": message_id, "recipient": recipient},
            )
            try:
                await self.index_manager.append_summary(summary)
            except IndexStorageError as e:
                logger.error(
                    f"Failed to update weekly index for email #{message_id}: {e}",
                    extra={"message_id": message_id},
                )

        return summary
