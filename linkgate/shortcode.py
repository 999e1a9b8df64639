"""Short code generation."""

import hashlib
import secrets
import string
from typing import Optional


class ShortCodeGenerator:
    """Generates base62 short codes."""

    ALPHABET = string.ascii_letters + string.digits
    ALIAS_EXTRA = "-_"

    def __init__(self, default_length: int = 6):
        self.default_length = default_length

    def generate(self, length: Optional[int] = None) -> str:
        """Random code; collisions are the caller's problem (retry)."""
        length = length or self.default_length
        return "".join(secrets.choice(self.ALPHABET) for _ in range(length))

    def generate_from_url(self, url: str, salt: str = "", length: Optional[int] = None) -> str:
        """Deterministic code from a URL hash.

        Args:
            url: Target URL
            salt: Mixed into the hash so a retry after a collision differs
            length: Code length (default if not specified)

        Returns:
            Short code
        """
        length = length or self.default_length
        digest = hashlib.sha256(f"{url}{salt}".encode("utf-8")).hexdigest()
        return self.to_base62(int(digest, 16))[:length]

    @classmethod
    def to_base62(cls, num: int) -> str:
        if num == 0:
            return cls.ALPHABET[0]

        base = len(cls.ALPHABET)
        chars = []
        while num > 0:
            num, remainder = divmod(num, base)
            chars.append(cls.ALPHABET[remainder])
        return "".join(reversed(chars))

    @classmethod
    def is_valid_format(cls, code: str) -> bool:
        """Alphanumeric plus '-' and '_' (custom aliases)."""
        return bool(code) and all(c in cls.ALPHABET or c in cls.ALIAS_EXTRA for c in code)
