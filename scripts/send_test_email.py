#!/usr/bin/env python3
"""Test Email Generator for mailcapture.

Builds a test message (optionally with attachments) and prints it or sends it
to a running capture server.

Usage:
    # Print the message
    python scripts/send_test_email.py --to user@example.com --from sender@example.org

    # Send via SMTP
    python scripts/send_test_email.py --to user@example.com --from sender@example.org \
        --subject "Hello" --attachment notes.txt --send --smtp-port 2525

    # Send a deliberately malformed message (captured as .err)
    python scripts/send_test_email.py --to user@example.com --from sender@example.org \
        --malformed --send
"""

import argparse
import mimetypes
import os
import smtplib
import sys
from email.message import EmailMessage
from pathlib import Path
from typing import List, Optional

MALFORMED_MESSAGE = (
    "this line is not a header\r\n"
    "Content-Type: multipart/mixed\r\n"
    "\r\n"
    "no boundary anywhere\r\n"
)


def create_email(
    from_email: str,
    to_email: str,
    subject: str,
    body: Optional[str] = None,
    attachments: Optional[List[str]] = None,
) -> EmailMessage:
    """Create a MIME message with optional attachments.

    Args:
        from_email: Sender email address
        to_email: Recipient email address
        subject: Email subject
        body: Email body text (optional)
        attachments: List of file paths to attach

    Returns:
        EmailMessage: Email message
    """
    msg = EmailMessage()
    msg['From'] = from_email
    msg['To'] = to_email
    msg['Subject'] = subject
    msg['Message-ID'] = f"<test-{os.urandom(8).hex()}@mailcapture-test>"
    msg.set_content(body or f"Test message.\n\nSubject: {subject}")

    for filepath in attachments or []:
        path = Path(filepath)
        if not path.exists():
            print(f"WARNING: Attachment not found: {filepath}", file=sys.stderr)
            continue

        mime_type, _ = mimetypes.guess_type(filepath)
        if mime_type is None:
            mime_type = 'application/octet-stream'
        maintype, subtype = mime_type.split('/', 1)

        content = path.read_bytes()
        msg.add_attachment(content, maintype=maintype, subtype=subtype, filename=path.name)
        print(f"Attached: {path.name} ({len(content)} bytes)", file=sys.stderr)

    return msg


def send_raw(
    raw: bytes,
    from_email: str,
    to_email: str,
    smtp_host: str = 'localhost',
    smtp_port: int = 25,
) -> None:
    """Send raw message bytes via SMTP."""
    try:
        with smtplib.SMTP(smtp_host, smtp_port) as smtp:
            smtp.sendmail(from_email, [to_email], raw)
        print(f"Email sent successfully to {to_email} via {smtp_host}:{smtp_port}", file=sys.stderr)
    except (smtplib.SMTPException, OSError) as e:
        print(f"ERROR sending email: {e}", file=sys.stderr)
        sys.exit(1)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Generate test emails for mailcapture',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--from', dest='from_email', required=True, help='Sender email address')
    parser.add_argument('--to', dest='to_email', required=True, help='Recipient email address')
    parser.add_argument('--subject', default='Test message', help='Email subject')
    parser.add_argument('--body', help='Email body text (optional)')
    parser.add_argument('--attachment', action='append', help='File to attach (repeatable)')
    parser.add_argument('--malformed', action='store_true', help='Send a message that fails MIME decoding')
    parser.add_argument('--send', action='store_true', help='Send via SMTP (otherwise print)')
    parser.add_argument('--smtp-host', default='localhost', help='SMTP server hostname')
    parser.add_argument('--smtp-port', type=int, default=25, help='SMTP server port')

    args = parser.parse_args()

    if args.malformed:
        raw = MALFORMED_MESSAGE.encode('ascii')
    else:
        msg = create_email(args.from_email, args.to_email, args.subject, args.body, args.attachment)
        raw = msg.as_bytes()

    if args.send:
        send_raw(raw, args.from_email, args.to_email, args.smtp_host, args.smtp_port)
    else:
        sys.stdout.write(raw.decode('utf-8', errors='replace'))


if __name__ == '__main__':
    main()
