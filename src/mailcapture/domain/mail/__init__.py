"""Mail capture domain: summaries, weekly buckets and recipient policy."""

from .buckets import bucket_name, bucket_name_for, current_bucket
from .models import (
    ErrorDetail,
    TransactionSummary,
    WeeklyIndex,
    describe_error,
    format_timestamp,
    utc_now,
)
from .policy import ConnectionPolicy, PolicyDecision, is_recipient_allowed
from .ports import DecodedMessage, MessageDecodeError, MessageDecoder

__all__ = [
    "bucket_name",
    "bucket_name_for",
    "current_bucket",
    "ErrorDetail",
    "TransactionSummary",
    "WeeklyIndex",
    "describe_error",
    "format_timestamp",
    "utc_now",
    "ConnectionPolicy",
    "PolicyDecision",
    "is_recipient_allowed",
    "DecodedMessage",
    "MessageDecodeError",
    "MessageDecoder",
]
