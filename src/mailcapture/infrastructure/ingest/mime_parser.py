"""MIME Parser for captured messages.

Decodes raw message bytes incrementally with the standard library feed
parser and turns the result into a JSON-serializable structure: headers,
addresses, text/html bodies and attachment metadata.
"""

import email.errors
import email.policy
import hashlib
import logging
from email.message import EmailMessage
from email.parser import BytesFeedParser
from email.policy import EmailPolicy
from typing import Any, Dict, List, Optional

from ...domain.mail.models import describe_error
from ...domain.mail.ports import DecodedMessage, MessageDecodeError, MessageDecoder

logger = logging.getLogger(__name__)

# Defects that leave no usable header/body structure
STRUCTURAL_DEFECTS = (
    email.errors.MissingHeaderBodySeparatorDefect,
    email.errors.NoBoundaryInMultipartDefect,
    email.errors.StartBoundaryNotFoundDefect,
)


class StructuralPolicy(EmailPolicy):
    """Default policy that raises on structural defects only.

    Recoverable defects (bad base64 padding, missing closing boundary, ...)
    are registered on the message as usual.
    """

    def handle_defect(self, obj, defect):
        if isinstance(defect, STRUCTURAL_DEFECTS):
            raise defect
        self.register_defect(obj, defect)


STRICT_POLICY = StructuralPolicy()
LENIENT_POLICY = email.policy.default

ADDRESS_HEADERS = {
    "from": "From",
    "to": "To",
    "cc": "Cc",
    "bcc": "Bcc",
    "replyTo": "Reply-To",
}


class AttachmentInfo:
    """Information about an email attachment."""

    def __init__(
        self,
        filename: Optional[str],
        content_type: str,
        content_disposition: Optional[str],
        size: int,
        checksum: str,
    ):
        self.filename = filename
        self.content_type = content_type
        self.content_disposition = content_disposition
        self.size = size
        self.checksum = checksum

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "contentType": self.content_type,
            "contentDisposition": self.content_disposition,
            "size": self.size,
            "checksum": self.checksum,
        }


class MimeDecoder(MessageDecoder):
    """Incremental MIME decoder.

    In strict mode a structural defect (multipart without boundary, header
    block without separator, ...) fails the decode; other defects are only
    recorded. Once a chunk has failed, later chunks are ignored and
    ``close()`` raises.
    """

    def __init__(self, strict: bool = True):
        self._parser = BytesFeedParser(policy=STRICT_POLICY if strict else LENIENT_POLICY)
        self._error: Optional[Exception] = None

    def feed(self, chunk: bytes) -> None:
        if self._error is not None:
            return
        try:
            self._parser.feed(chunk)
        except Exception as e:
            self._error = e

    def close(self) -> DecodedMessage:
        if self._error is None:
            try:
                msg = self._parser.close()
                return build_decoded_message(msg)
            except Exception as e:
                self._error = e
        logger.debug(f"MIME decoding failed: {self._error}")
        raise MessageDecodeError(
            f"Invalid MIME message: {type(self._error).__name__}: {describe_error(self._error)}"
        ) from self._error


def parse_address_header(msg: EmailMessage, header: str) -> Optional[Dict[str, Any]]:
    """Return ``{value: [{address, name}], text}`` for an address header."""
    value = msg.get(header)
    if value is None:
        return None
    addresses = [
        {"address": addr.addr_spec, "name": addr.display_name}
        for addr in getattr(value, "addresses", ())
    ]
    return {"value": addresses, "text": str(value)}


def extract_headers(msg: EmailMessage) -> Dict[str, Any]:
    """Collect headers by lowercased name, repeated headers become lists."""
    headers: Dict[str, Any] = {}
    for name, value in msg.items():
        key = name.lower()
        if key in headers:
            existing = headers[key]
            if not isinstance(existing, list):
                headers[key] = existing = [existing]
            existing.append(str(value))
        else:
            headers[key] = str(value)
    return headers


def extract_body(msg: EmailMessage, subtype: str) -> Optional[str]:
    """Text of the preferred body part with the given subtype."""
    part = msg.get_body(preferencelist=(subtype,))
    if part is None:
        return None
    try:
        return part.get_content()
    except (LookupError, UnicodeError):
        # Unknown or lying charset
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", errors="replace")


def extract_attachments(msg: EmailMessage) -> List[AttachmentInfo]:
    """Extract attachment metadata from a MIME message.

    Walks the entire MIME tree and reports every leaf part that carries a
    filename or an ``attachment`` disposition. Content bytes are summarized by
    size and MD5 checksum.
    """
    attachments = []

    for part in msg.walk():
        if part.get_content_maintype() == "multipart":
            continue

        disposition = part.get_content_disposition()
        filename = part.get_filename()
        if disposition != "attachment" and not filename:
            continue

        content = part.get_payload(decode=True) or b""
        attachments.append(AttachmentInfo(
            filename=filename,
            content_type=part.get_content_type(),
            content_disposition=disposition,
            size=len(content),
            checksum=hashlib.md5(content).hexdigest(),
        ))

    return attachments


def build_decoded_message(msg: EmailMessage) -> DecodedMessage:
    """Turn a parsed message into a DecodedMessage."""
    content: Dict[str, Any] = {"headers": extract_headers(msg)}

    subject = msg.get("Subject")
    subject = str(subject) if subject is not None else None
    content["subject"] = subject

    for key, header in ADDRESS_HEADERS.items():
        parsed = parse_address_header(msg, header)
        if parsed is not None:
            content[key] = parsed

    date_header = msg.get("Date")
    date_value = getattr(date_header, "datetime", None)
    content["date"] = date_value.isoformat() if date_value else None

    for key, header in (("messageId", "Message-ID"), ("inReplyTo", "In-Reply-To"), ("references", "References")):
        value = msg.get(header)
        if value is not None:
            content[key] = str(value)

    content["text"] = extract_body(msg, "plain")
    content["html"] = extract_body(msg, "html")
    content["attachments"] = [a.to_dict() for a in extract_attachments(msg)]

    sender = content.get("from")
    from_addresses = [a["address"] for a in sender["value"]] if sender else []

    return DecodedMessage(
        from_addresses=from_addresses,
        subject=subject,
        content=content,
    )
