"""Inbound request context handed to the decision engine."""

import hashlib
from dataclasses import dataclass, field
from typing import Dict, Optional

from .common.headers import UNKNOWN


@dataclass
class RequestContext:
    """What the engine knows about one visit."""

    user_agent: str = ""
    ip: str = UNKNOWN
    referrer: Optional[str] = None
    password: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def password_supplied(self) -> bool:
        return self.password is not None

    @property
    def fingerprint(self) -> str:
        """Digest of the client IP and user agent; challenges are bound to it."""
        raw = f"{self.ip}\n{self.user_agent or ''}".encode("utf-8")
        return hashlib.sha256(raw).hexdigest()
