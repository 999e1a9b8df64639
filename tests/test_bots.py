"""Tests for user-agent bot classification."""

import pytest

from linkgate.common.ttl_cache import TTLCache
from linkgate.rules.bots import (
    BotClassifier,
    DEFAULT_DIVERSION_URL,
    FACEBOOK_URL,
    TWITTER_URL,
    TIKTOK_URL,
    classify_user_agent,
)
from tests.conftest import BROWSER_UA, IPHONE_UA, FACEBOOK_UA, BORDERLINE_UA


class TestClassifyUserAgent:
    """Tier matching and scoring."""

    def test_regular_browser_is_human(self):
        """Desktop Chrome scores zero."""
        signal = classify_user_agent(BROWSER_UA)
        assert signal.is_bot is False
        assert signal.confidence == 0
        assert signal.should_divert is False
        assert signal.needs_challenge is False
        assert signal.suggested_diversion_url is None

    def test_mobile_safari_is_human(self):
        """iPhone Safari scores zero."""
        assert classify_user_agent(IPHONE_UA).confidence == 0

    def test_facebook_crawler(self):
        """facebookexternalhit is a social bot sent back to Facebook."""
        signal = classify_user_agent(FACEBOOK_UA)
        assert signal.is_bot is True
        assert signal.bot_type == "social"
        assert signal.confidence == 98
        assert signal.should_divert is True
        assert signal.suggested_diversion_url == FACEBOOK_URL

    @pytest.mark.parametrize("ua,url", [
        ("Twitterbot/1.0", TWITTER_URL),
        ("Mozilla/5.0 (Linux; Android 5.0) AppleWebKit/537.36 (compatible; Bytespider)", TIKTOK_URL),
        ("Slackbot-LinkExpanding 1.0 (+https://api.slack.com/robots)", DEFAULT_DIVERSION_URL),
    ])
    def test_social_platform_diversions(self, ua, url):
        """Each social platform has its own diversion, unmapped ones get the default."""
        signal = classify_user_agent(ua)
        assert signal.bot_type == "social"
        assert signal.suggested_diversion_url == url

    def test_matching_is_case_insensitive(self):
        """Patterns match regardless of case."""
        assert classify_user_agent(FACEBOOK_UA.upper()).confidence == 98

    def test_search_crawler_is_challenged_not_diverted(self):
        """Googlebot scores 90: a bot, but inside the challenge band."""
        signal = classify_user_agent("Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)")
        assert signal.bot_type == "crawler"
        assert signal.confidence == 90
        assert signal.is_bot is True
        assert signal.should_divert is False
        assert signal.needs_challenge is True
        assert signal.suggested_diversion_url == DEFAULT_DIVERSION_URL

    def test_http_library_in_challenge_band(self):
        """python-requests (long enough to avoid the short bonus) is challenged."""
        signal = classify_user_agent(BORDERLINE_UA)
        assert signal.confidence == 90
        assert signal.needs_challenge is True

    def test_suspicious_client(self):
        """Go's default client is suspicious (80)."""
        signal = classify_user_agent("Go-http-client/1.1 (linux)")
        assert signal.bot_type == "scraper"
        assert signal.confidence == 80
        assert signal.is_bot is True

    def test_anchored_suspicious_pattern(self):
        """Clients anchored at the start of the string are suspicious."""
        signal = classify_user_agent("axios/1.6.7 (node; linux x64)")
        assert signal.confidence == 80
        assert signal.matched_pattern is not None

    def test_short_user_agent_bonus_caps_at_100(self):
        """curl is a crawler and short: 90 + 45 capped to 100."""
        signal = classify_user_agent("curl/8.4.0")
        assert signal.confidence == 100
        assert signal.should_divert is True

    @pytest.mark.parametrize("ua", ["", None, "   ", "Opera Mini"])
    def test_empty_or_short_user_agent_is_challenged(self, ua):
        """Only the short bonus applies: 45, in the challenge band but not a bot."""
        signal = classify_user_agent(ua)
        assert signal.confidence == 45
        assert signal.is_bot is False
        assert signal.needs_challenge is True
        assert signal.suggested_diversion_url == DEFAULT_DIVERSION_URL

    def test_custom_default_diversion(self):
        """The default diversion URL is configurable."""
        signal = classify_user_agent("Googlebot/2.1 (+http://www.google.com/bot.html)", "https://example.org")
        assert signal.suggested_diversion_url == "https://example.org"

    def test_to_dict(self):
        """Serialized form carries all fields."""
        data = classify_user_agent(FACEBOOK_UA).to_dict()
        assert data["confidence"] == 98
        assert data["bot_type"] == "social"
        assert data["matched_pattern"] == "facebookexternalhit"


class TestBotClassifier:
    """Memoization through an injected cache."""

    def test_without_cache(self):
        """No cache still classifies."""
        classifier = BotClassifier(cache=None)
        assert classifier.classify(FACEBOOK_UA).confidence == 98

    def test_results_are_cached(self):
        """A classification is stored under the raw user agent."""
        cache = TTLCache(ttl_seconds=60)
        classifier = BotClassifier(cache=cache)

        first = classifier.classify(FACEBOOK_UA)

        assert len(cache) == 1
        assert cache.get(FACEBOOK_UA) == first
        assert classifier.classify(FACEBOOK_UA) is first

    def test_cache_does_not_change_outcome(self):
        """Cached and uncached classifiers agree."""
        cached = BotClassifier(cache=TTLCache(ttl_seconds=60))
        uncached = BotClassifier(cache=None)
        for ua in [BROWSER_UA, FACEBOOK_UA, BORDERLINE_UA, "", "curl/8.4.0"]:
            assert cached.classify(ua) == uncached.classify(ua)
            assert cached.classify(ua) == uncached.classify(ua)

    def test_expired_entries_are_recomputed(self):
        """Entries past their TTL are dropped."""
        now = [1000.0]
        cache = TTLCache(ttl_seconds=10, clock=lambda: now[0])
        classifier = BotClassifier(cache=cache)

        classifier.classify(FACEBOOK_UA)
        now[0] += 11

        assert cache.get(FACEBOOK_UA) is None
        assert len(cache) == 0
