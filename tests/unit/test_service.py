"""Unit tests for service wiring."""

import logging
from pathlib import Path

from mailcapture.infrastructure.ingest.mime_parser import MimeDecoder
from mailcapture.infrastructure.ingest.smtp_handler import MailCaptureSMTPHandler
from mailcapture.service import build_smtp_handler, log_admin_api_disabled


class TestBuildSMTPHandler:
    """Handler assembled from settings"""

    def test_wiring(self, settings, mail_root):
        handler = build_smtp_handler(settings)
        assert isinstance(handler, MailCaptureSMTPHandler)
        assert handler.policy.domains == ["example.com"]
        assert handler.policy.prefix == ""
        assert handler.store.mail_root == Path(mail_root)
        assert handler.index_manager.mail_root == Path(mail_root)
        assert handler.chunk_size == settings.SMTP_CHUNK_SIZE

    def test_decoder_factory_returns_fresh_decoders(self, settings):
        factory = build_smtp_handler(settings).ingestor.decoder_factory
        first, second = factory(), factory()
        assert isinstance(first, MimeDecoder)
        assert first is not second


class TestAdminApiDisabledWarning:
    """Operator hints when the Admin API is off"""

    def test_logs_required_settings(self, settings, caplog):
        with caplog.at_level(logging.WARNING, logger="mailcapture.service"):
            log_admin_api_disabled(settings)
        text = caplog.text
        assert "Admin API will not be enabled" in text
        assert "ADMIN_APP_PORT=2255" in text
        assert "at least 20 chars" in text
