"""Message Ingestor - raw capture and decoding of one inbound message.

The inbound byte stream is fanned out to two consumers that run
concurrently: a raw writer copying bytes verbatim to ``<label>.raw`` and a
decoder. When decoding ends, the decoded JSON (``<label>.json``) or the error
detail (``<label>.err``) is written next to the raw file.

Failures never escape ``ingest()``: they are recorded on the returned
TransactionSummary.
"""

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, Callable, Optional, Sequence, Tuple

from ...domain.mail.models import ErrorDetail, TransactionSummary, utc_now
from ...domain.mail.ports import DecodedMessage, MessageDecoder
from ...observability.metrics import ingest_duration_seconds
from ..storage.recipient_store import RecipientStore

logger = logging.getLogger(__name__)

_END = object()


class StreamAborted:
    """Queue item carrying the error that ended the source stream early."""

    def __init__(self, error: BaseException):
        self.error = error


async def iter_chunks(content: bytes, chunk_size: int = 8192) -> AsyncIterator[bytes]:
    """Stream an in-memory message as chunks."""
    view = memoryview(content)
    for start in range(0, len(view), chunk_size):
        yield bytes(view[start:start + chunk_size])


class MessageIngestor:
    """Captures and decodes inbound messages into recipient folders.

    Example:
        ingestor = MessageIngestor(store, lambda: MimeDecoder(strict=True))
        summary = await ingestor.ingest(folder, "abc123", iter_chunks(raw))
    """

    def __init__(
        self,
        store: RecipientStore,
        decoder_factory: Callable[[], MessageDecoder],
        clock: Callable = utc_now,
    ):
        """Initialize ingestor.

        Args:
            store: Recipient store used for every file operation
            decoder_factory: Returns a fresh decoder per message
            clock: Returns the current UTC instant
        """
        self.store = store
        self.decoder_factory = decoder_factory
        self.clock = clock

    async def ingest(
        self,
        recipient_folder_path: str,
        message_id: str,
        stream: AsyncIterable[bytes],
    ) -> TransactionSummary:
        """Capture one message stream for one recipient.

        Args:
            recipient_folder_path: Recipient folder from RecipientStore
            message_id: Transport-assigned message ID
            stream: Raw message bytes

        Returns:
            TransactionSummary: Outcome with exactly one of filename/error set
        """
        started = time.monotonic()
        summary = TransactionSummary(
            recipient_folder_path=recipient_folder_path,
            message_id=message_id,
            processed_at=self.clock(),
        )
        folder = Path(recipient_folder_path)
        label = summary.label

        try:
            await self.store.ensure_directory(folder)
        except OSError as e:
            logger.error(f"Failed to create recipient folder {folder}: {e}")
            summary.write_err = ErrorDetail.from_exception(e)

        raw_queue: asyncio.Queue = asyncio.Queue()
        decode_queue: asyncio.Queue = asyncio.Queue()
        pump_task = asyncio.create_task(self._pump(stream, (raw_queue, decode_queue)))
        raw_task = asyncio.create_task(self._capture_raw(folder / f"{label}.raw", raw_queue))
        decode_task = asyncio.create_task(self._decode(decode_queue))
        tasks = (pump_task, raw_task, decode_task)

        try:
            decoded, decode_error = await decode_task

            if decode_error is not None:
                detail = ErrorDetail.from_exception(decode_error)
                filename = f"{label}.err"
                body = json.dumps(detail.model_dump(), indent=2)
                summary.error = detail
            else:
                filename = f"{label}.json"
                body = json.dumps(decoded.content, indent=2, ensure_ascii=False, default=str)
                if decoded.from_addresses:
                    summary.from_address = decoded.from_addresses[0]
                summary.subject = decoded.subject
                summary.filename = filename

            try:
                await self.store.write_artifact(folder / filename, body)
            except OSError as e:
                logger.error(f"Failed to write email to file: {e}")
                if summary.write_err is None:
                    summary.write_err = ErrorDetail.from_exception(e)

            raw_error = await raw_task
            if raw_error is not None and summary.write_err is None:
                summary.write_err = ErrorDetail.from_exception(raw_error)

            await pump_task
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        ingest_duration_seconds.observe(time.monotonic() - started)
        return summary

    async def _pump(self, stream: AsyncIterable[bytes], queues: Sequence[asyncio.Queue]) -> None:
        """Copy every chunk of the source stream into each consumer queue."""
        try:
            async for chunk in stream:
                for queue in queues:
                    queue.put_nowait(chunk)
        except Exception as e:
            logger.warning(f"Message stream aborted: {e}")
            for queue in queues:
                queue.put_nowait(StreamAborted(e))
        else:
            for queue in queues:
                queue.put_nowait(_END)

    async def _capture_raw(self, path: Path, queue: asyncio.Queue) -> Optional[OSError]:
        """Write raw chunks verbatim; returns the write error, if any."""
        try:
            async with self.store.open_raw(path) as raw:
                while True:
                    item = await queue.get()
                    if item is _END or isinstance(item, StreamAborted):
                        return None
                    await raw.write(item)
        except OSError as e:
            logger.error(f"Failed to capture raw message {path}: {e}")
            return e

    async def _decode(
        self, queue: asyncio.Queue
    ) -> Tuple[Optional[DecodedMessage], Optional[BaseException]]:
        """Feed chunks to a fresh decoder; returns (decoded, error)."""
        try:
            decoder = self.decoder_factory()
            while True:
                item = await queue.get()
                if item is _END:
                    break
                if isinstance(item, StreamAborted):
                    return None, item.error
                decoder.feed(item)
            return decoder.close(), None
        except Exception as e:
            return None, e
