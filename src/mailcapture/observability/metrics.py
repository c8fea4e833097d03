"""Prometheus metrics for mailcapture.

Defines operational counters for the SMTP ingestion pipeline.
"""

from prometheus_client import Counter, Histogram

# Recipient policy decisions
recipients_total = Counter(
    "mailcapture_recipients_total",
    "Envelope recipients judged by the connection policy",
    ["decision"]  # accepted|rejected
)

# Ingestion outcomes
messages_ingested_total = Counter(
    "mailcapture_messages_ingested_total",
    "Messages ingested per recipient",
    ["outcome"]  # saved|decode_error|write_error
)

ingest_duration_seconds = Histogram(
    "mailcapture_ingest_duration_seconds",
    "Time spent capturing and decoding one message in seconds",
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Weekly index maintenance
index_updates_total = Counter(
    "mailcapture_index_updates_total",
    "Weekly index read-modify-write cycles",
    ["status"]  # success|error
)
