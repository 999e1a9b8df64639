"""Pure request classifiers used by the access controller."""

from .bots import (
    BotSignal,
    BotClassifier,
    classify_user_agent,
    BOT_THRESHOLD,
    DIVERT_THRESHOLD,
    CHALLENGE_THRESHOLD,
)
from .network import is_ip_blocked, ip_matches_rule
from .geo import is_country_blocked, is_unknown_country, UNKNOWN_COUNTRY
from .expiration import is_expired

__all__ = [
    "BotSignal",
    "BotClassifier",
    "classify_user_agent",
    "BOT_THRESHOLD",
    "DIVERT_THRESHOLD",
    "CHALLENGE_THRESHOLD",
    "is_ip_blocked",
    "ip_matches_rule",
    "is_country_blocked",
    "is_unknown_country",
    "UNKNOWN_COUNTRY",
    "is_expired",
]
