"""Pydantic schemas for the mail read API."""

from typing import Optional

from pydantic import BaseModel, Field

from ..domain.mail.models import TransactionSummary


class MessageLink(BaseModel):
    """Link to a stored message artifact."""

    href: str = Field(..., description="API path of the decoded message")


class SummaryView(TransactionSummary):
    """Transaction summary as listed by the API.

    The internal recipient folder is replaced by the recipient address and a
    link to the stored artifact.
    """

    recipient_folder_path: Optional[str] = None
    recipient: str = Field(..., description="Recipient folder name (sanitized address)")
    message: MessageLink
