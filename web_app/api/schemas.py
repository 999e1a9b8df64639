"""Pydantic schemas for API requests and responses."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class CreateLinkRequest(BaseModel):
    """Request to create a link."""

    url: str = Field(..., description="Destination URL", min_length=1, max_length=2048)
    custom_code: Optional[str] = Field(None, description="Optional custom alias", min_length=4, max_length=20)
    password: Optional[str] = Field(None, description="Optional access password", min_length=1, max_length=128)
    expires_at: Optional[datetime] = Field(None, description="Optional expiry (UTC if no offset)")
    blocked_countries: List[str] = Field(default_factory=list, description="Country names or ISO codes")
    blocked_ips: List[str] = Field(default_factory=list, description="IP addresses or CIDR ranges")
    direct_link: bool = Field(False, description="Redirect at once instead of showing a countdown page")
    description: Optional[str] = Field(None, max_length=500)
    tags: List[str] = Field(default_factory=list)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v

    @field_validator("custom_code", "password", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "url": "https://example.com/very/long/path/to/resource",
                },
                {
                    "url": "https://github.com/user/repo",
                    "custom_code": "myrepo",
                    "password": "s3cret",
                    "blocked_countries": ["Russia", "CN"],
                    "blocked_ips": ["203.0.113.0/24"],
                },
            ]
        }
    }


class LinkResponse(BaseModel):
    """Link details. The password hash is never exposed."""

    short_code: str
    short_url: str
    custom_code: Optional[str] = None
    original_url: str
    created_at: datetime
    expires_at: Optional[datetime] = None
    requires_password: bool
    direct_link: bool
    blocked_countries: List[str]
    blocked_ips: List[str]
    clicks: int
    last_clicked_at: Optional[datetime] = None
    description: Optional[str] = None
    tags: List[str]


class ClickResponse(BaseModel):
    """One recorded click."""

    clicked_at: datetime
    browser: Optional[str] = None
    device: Optional[str] = None
    os: Optional[str] = None
    referrer: Optional[str] = None
    ip: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None


class ClicksResponse(BaseModel):
    short_code: str
    count: int
    clicks: List[ClickResponse]


class BotCheckResponse(BaseModel):
    """Classification of the caller's user agent."""

    is_bot: bool
    bot_type: str
    confidence: int
    suggested_diversion_url: Optional[str] = None
    matched_pattern: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall status")
    database: str = Field(..., description="Database status")
    cache: str = Field(..., description="Cache status")
    timestamp: datetime = Field(..., description="Check timestamp")


class ErrorResponse(BaseModel):
    """Error response."""

    detail: str = Field(..., description="Error message")


class StatisticsResponse(BaseModel):
    """Statistics response."""

    total_links: int
    total_clicks: int
    database: str
    cache_enabled: bool
    custom_codes_enabled: bool
    pending_recordings: int = 0
