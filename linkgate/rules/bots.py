"""User-agent based bot classification.

Three ranked tiers of patterns are checked against the lowercased user agent,
and the first tier with a match decides the confidence:

* social platform crawlers (98): link-preview fetchers, each sent back to its
  own platform so previews never consume the real redirect;
* general crawlers and headless browsers (90);
* low-level HTTP clients (80), including patterns anchored at the start of
  the string.

A user agent shorter than ``SHORT_USER_AGENT_LENGTH`` adds a flat bonus; real
browsers never send strings that short.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Pattern, Sequence, Tuple

from ..common.ttl_cache import TTLCache


BOT_THRESHOLD = 75
DIVERT_THRESHOLD = 95
CHALLENGE_THRESHOLD = 40

SOCIAL_CONFIDENCE = 98
CRAWLER_CONFIDENCE = 90
SUSPICIOUS_CONFIDENCE = 80

SHORT_USER_AGENT_LENGTH = 15
SHORT_USER_AGENT_BONUS = 45

DEFAULT_DIVERSION_URL = "https://www.google.com"

FACEBOOK_URL = "https://www.facebook.com"
TWITTER_URL = "https://www.twitter.com"
TIKTOK_URL = "https://www.tiktok.com"
INSTAGRAM_URL = "https://www.instagram.com"
LINKEDIN_URL = "https://www.linkedin.com"
WHATSAPP_URL = "https://web.whatsapp.com"
TELEGRAM_URL = "https://web.telegram.org"
DISCORD_URL = "https://discord.com"
SNAPCHAT_URL = "https://www.snapchat.com"
PINTEREST_URL = "https://www.pinterest.com"

# (pattern, diversion URL); None falls back to the default diversion.
SOCIAL_PATTERNS: Tuple[Tuple[str, Optional[str]], ...] = (
    ("facebookexternalhit", FACEBOOK_URL),
    ("facebookcatalog", FACEBOOK_URL),
    ("facebookbot", FACEBOOK_URL),
    ("twitterbot", TWITTER_URL),
    ("twitter", TWITTER_URL),
    ("tiktok", TIKTOK_URL),
    ("bytespider", TIKTOK_URL),
    ("bytedance", TIKTOK_URL),
    ("instagram", INSTAGRAM_URL),
    ("linkedin", LINKEDIN_URL),
    ("whatsapp", WHATSAPP_URL),
    ("telegram", TELEGRAM_URL),
    ("discord", DISCORD_URL),
    ("snapchat", SNAPCHAT_URL),
    ("snapbot", SNAPCHAT_URL),
    ("pinterest", PINTEREST_URL),
    ("slackbot", None),
    ("slack", None),
    ("skype", None),
)

CRAWLER_PATTERNS: Tuple[str, ...] = (
    "googlebot", "bingbot", "slurp", "duckduckbot",
    "baiduspider", "yandexbot", "sogou", "exabot",
    "crawler", "spider", "scraper",
    "curl", "wget", "python-requests", "node-fetch",
    "headlesschrome", "phantomjs", "selenium",
    "bot",
)

SUSPICIOUS_PATTERNS: Tuple[str, ...] = (
    "python", "java", "go-http-client", "okhttp",
    "apache-httpclient", "libwww-perl", "lwp-trivial",
)

SUSPICIOUS_ANCHORED: Tuple[Pattern, ...] = (
    re.compile(r"^(ruby|php|perl|axios|aiohttp|httpx|http\.rb|guzzlehttp|postmanruntime|insomnia)\b"),
    # Bare "tool/1.2.3" with no platform details
    re.compile(r"^[a-z0-9._-]+/[0-9][0-9a-z.]*$"),
)


@dataclass(frozen=True)
class BotSignal:
    """Classification of one user agent. Recomputed per request, never stored."""

    is_bot: bool
    bot_type: str
    confidence: int
    suggested_diversion_url: Optional[str] = None
    matched_pattern: Optional[str] = None

    @property
    def should_divert(self) -> bool:
        """Obvious bot: divert before any other processing."""
        return self.confidence >= DIVERT_THRESHOLD

    @property
    def needs_challenge(self) -> bool:
        """Borderline: a human verification challenge gates the redirect."""
        return CHALLENGE_THRESHOLD <= self.confidence < DIVERT_THRESHOLD

    def to_dict(self) -> dict:
        return {
            "is_bot": self.is_bot,
            "bot_type": self.bot_type,
            "confidence": self.confidence,
            "suggested_diversion_url": self.suggested_diversion_url,
            "matched_pattern": self.matched_pattern,
        }


def _match_social(ua: str) -> Optional[Tuple[str, Optional[str]]]:
    for pattern, url in SOCIAL_PATTERNS:
        if pattern in ua:
            return pattern, url
    return None


def _match_any(ua: str, patterns: Sequence[str]) -> Optional[str]:
    for pattern in patterns:
        if pattern in ua:
            return pattern
    return None


def _match_anchored(ua: str) -> Optional[str]:
    for regex in SUSPICIOUS_ANCHORED:
        if regex.match(ua):
            return regex.pattern
    return None


def classify_user_agent(
    user_agent: Optional[str],
    default_diversion_url: str = DEFAULT_DIVERSION_URL,
) -> BotSignal:
    """Classify a raw user agent string. Pure function.

    Args:
        user_agent: Raw User-Agent header (None treated as empty)
        default_diversion_url: Target for bots without a platform-specific URL

    Returns:
        BotSignal
    """
    raw = user_agent or ""
    ua = raw.lower()

    confidence = 0
    bot_type = "unknown"
    diversion_url = None
    matched = None

    social = _match_social(ua)
    if social:
        matched, url = social
        confidence = SOCIAL_CONFIDENCE
        bot_type = "social"
        diversion_url = url or default_diversion_url
    else:
        crawler = _match_any(ua, CRAWLER_PATTERNS)
        if crawler:
            matched = crawler
            confidence = CRAWLER_CONFIDENCE
            bot_type = "crawler"
            diversion_url = default_diversion_url
        else:
            suspicious = _match_any(ua, SUSPICIOUS_PATTERNS) or _match_anchored(ua)
            if suspicious:
                matched = suspicious
                confidence = SUSPICIOUS_CONFIDENCE
                bot_type = "scraper"
                diversion_url = default_diversion_url

    if len(raw.strip()) < SHORT_USER_AGENT_LENGTH:
        confidence += SHORT_USER_AGENT_BONUS
        if diversion_url is None:
            diversion_url = default_diversion_url

    confidence = min(100, confidence)

    return BotSignal(
        is_bot=confidence >= BOT_THRESHOLD,
        bot_type=bot_type,
        confidence=confidence,
        suggested_diversion_url=diversion_url,
        matched_pattern=matched,
    )


class BotClassifier:
    """Bot classifier with an optional, explicitly owned memoization cache."""

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        default_diversion_url: str = DEFAULT_DIVERSION_URL,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize classifier.

        Args:
            cache: Cache of results per raw user agent; None disables memoization
            default_diversion_url: Target for bots without a platform-specific URL
            logger: Optional logger
        """
        self.cache = cache
        self.default_diversion_url = default_diversion_url
        self.logger = logger or logging.getLogger(__name__)

    def classify(self, user_agent: Optional[str]) -> BotSignal:
        key = user_agent or ""

        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        signal = classify_user_agent(user_agent, self.default_diversion_url)

        if signal.is_bot:
            self.logger.debug(
                f"Bot detected ({signal.bot_type}, confidence {signal.confidence}, "
                f"pattern {signal.matched_pattern!r})"
            )

        if self.cache is not None:
            self.cache.set(key, signal)

        return signal
