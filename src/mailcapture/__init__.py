"""mailcapture - SMTP mail-capture service.

Accepts inbound mail for configured domains, stores every message per
recipient and keeps a weekly index that the Admin API reads.
"""

__version__ = "0.1.0"
