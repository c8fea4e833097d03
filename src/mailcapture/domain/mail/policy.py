"""Connection and recipient acceptance rules.

A recipient is accepted when its lowercased address starts with the
configured prefix and ends with one of the configured domains. The domain
test is a plain string suffix, so ``notexample.com`` matches ``example.com``.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

REFUSAL_REASON = "No thank you"


@dataclass(frozen=True)
class PolicyDecision:
    """Result of a policy check."""
    accepted: bool
    reason: Optional[str] = None


ACCEPTED = PolicyDecision(accepted=True)
REFUSED = PolicyDecision(accepted=False, reason=REFUSAL_REASON)


def is_recipient_allowed(candidate: str, domains: Sequence[str], prefix: str) -> bool:
    """Check a recipient address against domain and prefix rules.

    Args:
        candidate: Envelope recipient address
        domains: Accepted domains (compared case-insensitively)
        prefix: Required local-part prefix, empty matches everything

    Returns:
        bool: True when both the prefix and a domain suffix match
    """
    address = candidate.lower()
    if not address.startswith(prefix):
        return False
    return any(address.endswith(domain.lower()) for domain in domains)


class ConnectionPolicy:
    """Accept/reject decisions for SMTP connections and recipients."""

    def __init__(self, domains: Sequence[str], prefix: str = ""):
        self.domains = list(domains)
        self.prefix = prefix

    def decide_connection(self, remote_address: Optional[str]) -> PolicyDecision:
        """Every connection is accepted; deny rules would go here."""
        logger.info(
            f"Connection from {remote_address} received",
            extra={"remote_address": remote_address},
        )
        return ACCEPTED

    def decide_recipient(self, candidate: str) -> PolicyDecision:
        if is_recipient_allowed(candidate, self.domains, self.prefix):
            return ACCEPTED
        return REFUSED
