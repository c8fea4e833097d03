"""Shared pytest fixtures.

Provides:
- Settings pointing at a temporary mail root
- Recipient store, weekly index manager and ingestor wired to that root
- A multipart sample message and a summary factory
"""

from email.message import EmailMessage

import pytest

from mailcapture.config import Settings
from mailcapture.domain.mail.models import TransactionSummary
from mailcapture.infrastructure.ingest.ingestor import MessageIngestor
from mailcapture.infrastructure.ingest.mime_parser import MimeDecoder
from mailcapture.infrastructure.storage.recipient_store import RecipientStore
from mailcapture.infrastructure.storage.weekly_index import WeeklyIndexManager

from tests.samples import FIXED_NOW, TEST_API_KEY


@pytest.fixture
def mail_root(tmp_path):
    return tmp_path / "mail"


@pytest.fixture
def settings(mail_root):
    return Settings(
        _env_file=None,
        MAIL_ROOT=str(mail_root),
        EMAIL_DOMAIN="example.com",
        API_KEY=TEST_API_KEY,
        ADMIN_APP_PORT=2255,
    )


@pytest.fixture
def store(mail_root):
    return RecipientStore(mail_root)


@pytest.fixture
def index_manager(mail_root):
    return WeeklyIndexManager(mail_root)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def ingestor(store, fixed_clock):
    return MessageIngestor(store, lambda: MimeDecoder(strict=True), clock=fixed_clock)


@pytest.fixture
def multipart_message():
    msg = EmailMessage()
    msg["From"] = "Bob <bob@sender.org>"
    msg["To"] = "user@example.com, other@example.com"
    msg["Cc"] = "carol@example.com"
    msg["Subject"] = "Report attached"
    msg.set_content("Plain body")
    msg.add_alternative("<p>HTML body</p>", subtype="html")
    msg.add_attachment(b"col1,col2\n1,2\n", maintype="text", subtype="csv", filename="report.csv")
    return msg.as_bytes()


@pytest.fixture
def make_summary(store):
    """Factory for transaction summaries."""

    def _make(message_id="msg1", processed_at=FIXED_NOW, recipient="user@example.com", **kwargs):
        kwargs.setdefault("filename", f"{message_id}.json")
        return TransactionSummary(
            recipient_folder_path=store.recipient_folder(recipient),
            message_id=message_id,
            processed_at=processed_at,
            **kwargs,
        )

    return _make
