#!/usr/bin/env python3
"""SMTP Server Startup Script for mailcapture.

Starts the aiosmtpd capture server and, when ADMIN_APP_PORT and API_KEY are
configured, the Admin API.

Usage:
    python scripts/start_smtp_server.py

Environment Variables:
    EMAIL_DOMAIN: Comma-separated accepted recipient domains
    EMAIL_ACCOUNT_PREFIX: Required local-part prefix (default: empty)
    MAIL_ROOT: Storage directory (default: mail)
    SMTP_HOST / SMTP_PORT: Bind address (default: 0.0.0.0:25)
    ADMIN_APP_PORT: Admin API port (Admin API disabled when unset)
    API_KEY: Admin API key, at least 20 characters
"""

from mailcapture.service import main

if __name__ == '__main__':
    main()
