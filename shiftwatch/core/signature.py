"""
Slack request signature verification.

Slack signs every Events API request with HMAC-SHA256 over
``v0:{timestamp}:{raw_body}`` keyed by the app's signing secret. Requests whose
timestamp falls outside the tolerance window are rejected before any HMAC is
computed.
"""

from __future__ import annotations

import hashlib
import hmac
import time
from typing import Callable, Mapping, Optional

from shiftwatch.exceptions import InvalidSignatureError, StaleRequestError
from shiftwatch.infra.logging_config import get_logger

logger = get_logger("signature")

SIGNATURE_HEADER = "X-Slack-Signature"
TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
SIGNATURE_VERSION = "v0"
DEFAULT_TOLERANCE_SECONDS = 300


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    name_lower = name.lower()
    for key, value in headers.items():
        if key.lower() == name_lower:
            return value
    return None


def compute_signature(signing_secret: str, timestamp: str, raw_body: str) -> str:
    """Return the ``v0=<hex>`` signature Slack would send for this body."""
    base = f"{SIGNATURE_VERSION}:{timestamp}:{raw_body}"
    digest = hmac.new(
        signing_secret.encode("utf-8"), base.encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return f"{SIGNATURE_VERSION}={digest}"


class SignatureVerifier:
    """Validates webhook authenticity and freshness."""

    def __init__(
        self,
        signing_secret: Optional[str],
        tolerance_seconds: int = DEFAULT_TOLERANCE_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._signing_secret = signing_secret
        self._tolerance_seconds = tolerance_seconds
        self._clock = clock

    def check(self, headers: Mapping[str, str], raw_body: str) -> None:
        """
        Verify the request or raise.

        Raises:
            StaleRequestError: timestamp outside the replay window.
            InvalidSignatureError: missing headers, no secret, or mismatch.
        """
        signature = _header(headers, SIGNATURE_HEADER)
        timestamp = _header(headers, TIMESTAMP_HEADER)
        if not signature or not timestamp:
            raise InvalidSignatureError("Missing Slack signature headers")

        try:
            request_time = int(timestamp)
        except (TypeError, ValueError) as e:
            raise InvalidSignatureError(f"Invalid timestamp header: {timestamp!r}") from e

        now = int(self._clock())
        if abs(now - request_time) > self._tolerance_seconds:
            raise StaleRequestError(
                f"Request timestamp {request_time} is {now - request_time}s from now"
            )

        if not self._signing_secret:
            raise InvalidSignatureError("Signing secret is not configured")

        expected = compute_signature(self._signing_secret, timestamp, raw_body)
        if not hmac.compare_digest(
            expected.encode("utf-8"), signature.encode("utf-8")
        ):
            raise InvalidSignatureError("Signature mismatch")

    def verify(self, headers: Mapping[str, str], raw_body: str) -> bool:
        """Return True if the request is authentic and fresh."""
        try:
            self.check(headers, raw_body)
        except StaleRequestError as e:
            logger.warning("Slack request rejected as stale: %s", e)
            return False
        except InvalidSignatureError as e:
            logger.warning("Slack signature verification failed: %s", e)
            return False
        return True
