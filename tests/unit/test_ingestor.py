"""Unit tests for the message ingestor (raw capture + decoding fan-out)."""

import asyncio
import json
from pathlib import Path

import pytest

from mailcapture.infrastructure.ingest.ingestor import MessageIngestor, iter_chunks
from mailcapture.infrastructure.ingest.mime_parser import MimeDecoder
from mailcapture.infrastructure.storage.recipient_store import RecipientStore

from tests.samples import (
    BAD_PADDING_MESSAGE,
    FIXED_LABEL,
    FIXED_NOW,
    MALFORMED_MESSAGE,
    NO_BOUNDARY_MESSAGE,
    VALID_MESSAGE,
)

LABEL = f"{FIXED_LABEL}-msg1"


async def ingest(ingestor, store, raw, recipient="user@example.com", chunk_size=16):
    folder = store.recipient_folder(recipient)
    summary = await ingestor.ingest(folder, "msg1", iter_chunks(raw, chunk_size))
    return summary, Path(folder)


class TestIterChunks:
    """Chunked streaming of in-memory messages"""

    @pytest.mark.asyncio
    async def test_chunks_reassemble(self):
        chunks = [chunk async for chunk in iter_chunks(VALID_MESSAGE, 10)]
        assert b"".join(chunks) == VALID_MESSAGE
        assert all(len(chunk) <= 10 for chunk in chunks)

    @pytest.mark.asyncio
    async def test_empty_message(self):
        assert [chunk async for chunk in iter_chunks(b"")] == []


class TestSuccessfulIngest:
    """Decodable messages"""

    @pytest.mark.asyncio
    async def test_summary(self, ingestor, store):
        summary, _ = await ingest(ingestor, store, VALID_MESSAGE)
        assert summary.label == LABEL
        assert summary.processed_at == FIXED_NOW
        assert summary.filename == f"{LABEL}.json"
        assert summary.from_address == "alice@sender.org"
        assert summary.subject == "Hello there"
        assert summary.error is None
        assert summary.write_err is None

    @pytest.mark.asyncio
    async def test_raw_bytes_preserved(self, ingestor, store):
        _, folder = await ingest(ingestor, store, VALID_MESSAGE, chunk_size=3)
        assert (folder / f"{LABEL}.raw").read_bytes() == VALID_MESSAGE

    @pytest.mark.asyncio
    async def test_decoded_artifact(self, ingestor, store):
        _, folder = await ingest(ingestor, store, VALID_MESSAGE)
        content = json.loads((folder / f"{LABEL}.json").read_text(encoding="utf-8"))
        assert content["subject"] == "Hello there"
        assert content["from"]["value"][0]["address"] == "alice@sender.org"
        assert not (folder / f"{LABEL}.err").exists()

    @pytest.mark.asyncio
    async def test_sanitized_folder(self, ingestor, store, mail_root):
        _, folder = await ingest(ingestor, store, VALID_MESSAGE, recipient="a/b@example.com")
        assert folder == mail_root / "a-b@example.com"
        assert (folder / f"{LABEL}.raw").exists()


class TestRecoverableDefects:
    """Readable messages with MIME defects are stored as decoded JSON"""

    @pytest.mark.asyncio
    async def test_bad_base64_padding(self, ingestor, store):
        summary, folder = await ingest(ingestor, store, BAD_PADDING_MESSAGE)
        assert summary.error is None
        assert summary.filename == f"{LABEL}.json"
        assert summary.subject == "Bad padding"

        content = json.loads((folder / f"{LABEL}.json").read_text(encoding="utf-8"))
        assert content["attachments"][0]["filename"] == "data.bin"
        assert not (folder / f"{LABEL}.err").exists()


class TestDecodeFailure:
    """Undecodable messages"""

    @pytest.mark.asyncio
    async def test_error_artifact(self, ingestor, store):
        summary, folder = await ingest(ingestor, store, MALFORMED_MESSAGE)
        assert summary.filename == ""
        assert summary.error.name == "MessageDecodeError"
        assert summary.write_err is None

        detail = json.loads((folder / f"{LABEL}.err").read_text(encoding="utf-8"))
        assert detail["name"] == "MessageDecodeError"
        assert detail["message"] == summary.error.message
        assert not (folder / f"{LABEL}.json").exists()

    @pytest.mark.asyncio
    async def test_missing_boundary_is_error(self, ingestor, store):
        summary, folder = await ingest(ingestor, store, NO_BOUNDARY_MESSAGE)
        assert summary.filename == ""
        assert "NoBoundaryInMultipartDefect" in summary.error.message
        assert not summary.error.message.endswith(": ")
        assert (folder / f"{LABEL}.err").exists()

    @pytest.mark.asyncio
    async def test_raw_still_captured(self, ingestor, store):
        _, folder = await ingest(ingestor, store, MALFORMED_MESSAGE)
        assert (folder / f"{LABEL}.raw").read_bytes() == MALFORMED_MESSAGE

    @pytest.mark.asyncio
    async def test_lenient_decoder_accepts(self, store, fixed_clock):
        ingestor = MessageIngestor(store, lambda: MimeDecoder(strict=False), clock=fixed_clock)
        summary, _ = await ingest(ingestor, store, MALFORMED_MESSAGE)
        assert summary.error is None
        assert summary.filename == f"{LABEL}.json"


class TestWriteFailures:
    """Persistence failures are recorded, not raised"""

    @pytest.mark.asyncio
    async def test_artifact_write_failure(self, ingestor, store, monkeypatch):
        async def failing_write(path, body):
            raise OSError("disk full")

        monkeypatch.setattr(store, "write_artifact", failing_write)
        summary, _ = await ingest(ingestor, store, VALID_MESSAGE)
        assert summary.write_err.name == "OSError"
        assert summary.write_err.message == "disk full"
        assert summary.error is None
        assert summary.filename == f"{LABEL}.json"

    @pytest.mark.asyncio
    async def test_unusable_mail_root(self, tmp_path, fixed_clock):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = RecipientStore(blocker)
        ingestor = MessageIngestor(store, lambda: MimeDecoder(strict=True), clock=fixed_clock)

        summary, _ = await ingest(ingestor, store, VALID_MESSAGE)
        assert summary.write_err is not None
        assert summary.error is None
        assert summary.subject == "Hello there"


class TestStreamErrors:
    """Source stream aborts and cancellation"""

    @pytest.mark.asyncio
    async def test_aborted_stream(self, ingestor, store):
        async def broken_stream():
            yield VALID_MESSAGE[:20]
            raise ConnectionResetError("peer went away")

        folder = store.recipient_folder("user@example.com")
        summary = await ingestor.ingest(folder, "msg1", broken_stream())

        assert summary.filename == ""
        assert summary.error.name == "ConnectionResetError"
        assert (Path(folder) / f"{LABEL}.err").exists()
        assert (Path(folder) / f"{LABEL}.raw").read_bytes() == VALID_MESSAGE[:20]

    @pytest.mark.asyncio
    async def test_cancellation_stops_workers(self, ingestor, store):
        first_chunk_sent = asyncio.Event()

        async def stalled_stream():
            yield VALID_MESSAGE[:20]
            first_chunk_sent.set()
            await asyncio.Event().wait()

        folder = store.recipient_folder("user@example.com")
        task = asyncio.create_task(ingestor.ingest(folder, "msg1", stalled_stream()))
        await asyncio.wait_for(first_chunk_sent.wait(), timeout=1)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        leftovers = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
        assert leftovers == []
