"""Human verification challenge for borderline visitors.

The challenge page waits for a real input event, then asks a small addition.
The issued token carries the code, an expiry, a nonce and a digest of the
visitor's IP and user agent, and is signed together with the expected answer,
so the answer itself never leaves the server. The only server-side state is
the set of nonces already submitted: a token can be submitted once.
"""

import base64
import hashlib
import hmac
import json
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .common.ttl_cache import TTLCache


@dataclass(frozen=True)
class Challenge:
    """An issued arithmetic challenge."""

    code: str
    question: str
    token: str
    expires_at: float


class ChallengeIssuer:
    """Issues and checks signed, single-use arithmetic challenges."""

    def __init__(
        self,
        secret_key: str,
        ttl_seconds: int = 120,
        clock: Callable[[], float] = time.time,
        used_nonces: Optional[TTLCache] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize issuer.

        Args:
            secret_key: HMAC key for tokens
            ttl_seconds: Lifetime of an issued token
            clock: Wall clock (injectable for tests)
            used_nonces: Where submitted nonces are remembered until expiry
            logger: Optional logger
        """
        self._key = secret_key.encode("utf-8")
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.used_nonces = used_nonces or TTLCache(ttl_seconds=ttl_seconds, max_entries=100000)
        self.logger = logger or logging.getLogger(__name__)

    def _sign(self, payload: str, answer: int) -> str:
        message = f"{payload}:{answer}".encode("utf-8")
        return hmac.new(self._key, message, hashlib.sha256).hexdigest()

    def issue(self, code: str, fingerprint: str = "") -> Challenge:
        """Create a challenge bound to a short code and a client fingerprint."""
        first = secrets.randbelow(10) + 1
        second = secrets.randbelow(10) + 1
        expires_at = self.clock() + self.ttl_seconds

        payload = json.dumps(
            {
                "code": code,
                "exp": int(expires_at),
                "nonce": secrets.token_hex(8),
                "fp": fingerprint,
            },
            separators=(",", ":"),
        )
        encoded = base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")
        token = f"{encoded}.{self._sign(encoded, first + second)}"

        return Challenge(
            code=code,
            question=f"{first} + {second}",
            token=token,
            expires_at=expires_at,
        )

    def _consume(self, payload: dict) -> bool:
        """Mark the token's nonce as used. False if it already was."""
        nonce = payload.get("nonce")
        if not isinstance(nonce, str) or not nonce:
            return False
        if self.used_nonces.get(nonce) is not None:
            return False
        try:
            remaining = max(float(payload.get("exp", 0)) - self.clock(), 1.0)
        except (TypeError, ValueError):
            return False
        self.used_nonces.set(nonce, True, ttl=remaining)
        return True

    def verify(
        self,
        code: str,
        token: str,
        answer: Optional[str],
        interacted: bool,
        fingerprint: str = "",
    ) -> bool:
        """Check a challenge submission. Both gates must pass.

        The token is spent by the first submission whatever its outcome, so
        a wrong answer cannot be retried and a right one cannot be replayed.

        Args:
            code: Code the submission was posted to
            token: Token from the challenge page
            answer: Visitor's answer to the addition
            interacted: Whether the page observed a real input event
            fingerprint: Fingerprint of the submitting client

        Returns:
            True only if the same client interacted and answered correctly in time
        """
        try:
            encoded, signature = token.split(".", 1)
            padded = encoded + "=" * (-len(encoded) % 4)
            payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
        except (AttributeError, ValueError, TypeError):
            self.logger.info(f"Challenge failed for {code}: malformed token")
            return False

        if not isinstance(payload, dict):
            self.logger.info(f"Challenge failed for {code}: malformed token")
            return False

        if not self._consume(payload):
            self.logger.warning(f"Challenge failed for {code}: token already used")
            return False

        if not interacted:
            self.logger.info(f"Challenge failed for {code}: no interaction")
            return False

        try:
            numeric_answer = int(str(answer).strip())
        except (TypeError, ValueError):
            self.logger.info(f"Challenge failed for {code}: non-numeric answer")
            return False

        if not hmac.compare_digest(signature, self._sign(encoded, numeric_answer)):
            self.logger.info(f"Challenge failed for {code}: wrong answer")
            return False

        if payload.get("code") != code:
            self.logger.info(f"Challenge failed for {code}: token bound to another code")
            return False

        if not hmac.compare_digest(str(payload.get("fp", "")), fingerprint or ""):
            self.logger.warning(f"Challenge failed for {code}: submitted by another client")
            return False

        if self.clock() > payload.get("exp", 0):
            self.logger.info(f"Challenge failed for {code}: token expired")
            return False

        return True
