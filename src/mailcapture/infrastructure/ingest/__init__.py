"""SMTP ingestion: protocol handler, MIME decoding and the message ingestor."""
