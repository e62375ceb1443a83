"""
Shared-secret access guard.

A single optional token gates every route except the static asset.
The guard is framework-agnostic: callers extract the token from
wherever the request carries it (query string for reads, form field
for POSTs) and ask whether it is admitted.
"""

import hmac
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class AccessGuard:
    """
    Decides whether a request-supplied token is admitted.

    With no configured token every request is admitted. Otherwise the
    supplied value must match exactly; there is no session, expiry or
    lockout, each call is judged on its own.
    """

    def __init__(self, expected_token: Optional[str] = None) -> None:
        # empty string behaves like "not configured"
        self._expected = expected_token or None

    @property
    def required(self) -> bool:
        """True when a token is configured."""
        return self._expected is not None

    @property
    def expected_token(self) -> Optional[str]:
        return self._expected

    def admits(self, supplied: Optional[str]) -> bool:
        """Return True if the request may proceed."""
        if self._expected is None:
            return True

        if supplied is None:
            logger.warning("Request missing access token")
            return False

        if not hmac.compare_digest(
            supplied.encode("utf-8"),
            self._expected.encode("utf-8"),
        ):
            logger.warning("Invalid access token attempt")
            return False

        return True
