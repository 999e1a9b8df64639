"""Data models for the link gate service."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional


def _parse_datetime(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Link:
    """A short code and everything that governs how it redirects."""

    id: str
    short_code: str
    original_url: str
    created_at: datetime
    custom_code: Optional[str] = None
    password_hash: Optional[str] = None
    expires_at: Optional[datetime] = None
    direct_link: bool = False
    blocked_countries: List[str] = field(default_factory=list)
    blocked_ips: List[str] = field(default_factory=list)
    clicks: int = 0
    last_clicked_at: Optional[datetime] = None
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    @property
    def requires_password(self) -> bool:
        return bool(self.password_hash)

    def to_dict(self, include_secret: bool = False) -> dict:
        """Convert to dictionary.

        The password hash is only included when explicitly asked for (cache
        serialization); API responses expose ``requires_password`` instead.
        """
        data = {
            "id": self.id,
            "short_code": self.short_code,
            "custom_code": self.custom_code,
            "original_url": self.original_url,
            "created_at": _format_datetime(self.created_at),
            "expires_at": _format_datetime(self.expires_at),
            "direct_link": self.direct_link,
            "blocked_countries": list(self.blocked_countries),
            "blocked_ips": list(self.blocked_ips),
            "clicks": self.clicks,
            "last_clicked_at": _format_datetime(self.last_clicked_at),
            "description": self.description,
            "tags": list(self.tags),
            "requires_password": self.requires_password,
        }
        if include_secret:
            data["password_hash"] = self.password_hash
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Link":
        """Create from dictionary (database row or cached JSON)."""
        return cls(
            id=str(data["id"]),
            short_code=data["short_code"],
            original_url=data["original_url"],
            created_at=_parse_datetime(data["created_at"]),
            custom_code=data.get("custom_code"),
            password_hash=data.get("password_hash"),
            expires_at=_parse_datetime(data.get("expires_at")),
            direct_link=bool(data.get("direct_link") or False),
            blocked_countries=list(data.get("blocked_countries") or []),
            blocked_ips=list(data.get("blocked_ips") or []),
            clicks=int(data.get("clicks") or 0),
            last_clicked_at=_parse_datetime(data.get("last_clicked_at")),
            description=data.get("description"),
            tags=list(data.get("tags") or []),
        )


@dataclass
class Click:
    """One accepted visit of a link."""

    link_id: str
    clicked_at: datetime
    user_agent: Optional[str] = None
    browser: Optional[str] = None
    device: Optional[str] = None
    os: Optional[str] = None
    referrer: Optional[str] = None
    ip: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "link_id": self.link_id,
            "clicked_at": _format_datetime(self.clicked_at),
            "user_agent": self.user_agent,
            "browser": self.browser,
            "device": self.device,
            "os": self.os,
            "referrer": self.referrer,
            "ip": self.ip,
            "country": self.country,
            "city": self.city,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Click":
        return cls(
            id=str(data["id"]) if data.get("id") is not None else None,
            link_id=str(data["link_id"]),
            clicked_at=_parse_datetime(data["clicked_at"]),
            user_agent=data.get("user_agent"),
            browser=data.get("browser"),
            device=data.get("device"),
            os=data.get("os"),
            referrer=data.get("referrer"),
            ip=data.get("ip"),
            country=data.get("country"),
            city=data.get("city"),
        )
