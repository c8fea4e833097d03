"""Pydantic models for captured mail.

Wire format (artifact files and API responses) uses camelCase field names;
Python code uses snake_case attributes.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current UTC instant truncated to millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def format_timestamp(moment: datetime) -> str:
    """Format a UTC instant as ISO-8601 with milliseconds and a Z suffix.

    Example:
        2024-03-07T10:15:30.123Z
    """
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def describe_error(exc: BaseException) -> str:
    """Exception message, falling back to the class docstring when empty.

    MIME defects and many OS errors carry no arguments.
    """
    message = str(exc)
    if message:
        return message
    doc = type(exc).__doc__ or ""
    return doc.strip().splitlines()[0] if doc.strip() else type(exc).__name__


class ErrorDetail(BaseModel):
    """Serializable description of a failure."""

    name: str
    message: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorDetail":
        return cls(name=type(exc).__name__, message=describe_error(exc))


class TransactionSummary(BaseModel):
    """Outcome of ingesting one message for one recipient.

    Exactly one of ``filename`` (non-empty) and ``error`` is set once
    ingestion finishes. ``write_err`` reports a later persistence failure and
    may accompany either.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    recipient_folder_path: str = Field(..., description="Storage key of the recipient folder")
    message_id: str = Field(..., description="Transport-assigned message ID")
    processed_at: datetime = Field(..., description="UTC instant raw capture started")
    from_address: Optional[str] = Field(None, alias="from", description="First sender address")
    subject: Optional[str] = None
    filename: str = Field("", description="Decoded artifact name, empty on decode failure")
    error: Optional[ErrorDetail] = None
    write_err: Optional[ErrorDetail] = None

    @field_serializer("processed_at")
    def _serialize_processed_at(self, value: datetime) -> str:
        return format_timestamp(value)

    @property
    def label(self) -> str:
        """Base name shared by the raw, decoded and error artifacts."""
        return f"{format_timestamp(self.processed_at)}-{self.message_id}"

    def to_wire(self) -> dict:
        """JSON-ready dict with camelCase keys, unset optionals omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class WeeklyIndex(BaseModel):
    """All summaries captured in one ISO week, newest first."""

    name: str
    messages: List[TransactionSummary] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)
