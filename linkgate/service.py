"""Link gate service: visit handling and link management."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from .access import AccessController
from .challenge import ChallengeIssuer
from .common.ttl_cache import TTLCache
from .common.validators import (
    is_valid_ip_rule,
    is_valid_short_code,
    is_valid_url,
    normalize_block_list,
)
from .context import RequestContext
from .database.base import LinkStoreBase
from .database.cache import RedisCache
from .database.models import Click, Link
from .dispatcher import Action, RedirectDispatcher
from .errors import LinkValidationError, ShortCodeConflictError
from .geolocation import GeoLocator
from .passwords import hash_password
from .recorder import ClickRecorder
from .resolver import IdentityResolver
from .rules.bots import BotClassifier, BotSignal
from .shortcode import ShortCodeGenerator


class LinkGateService:
    """Service layer tying the decision engine to storage."""

    def __init__(
        self,
        store: LinkStoreBase,
        resolver: IdentityResolver,
        controller: AccessController,
        dispatcher: RedirectDispatcher,
        recorder: ClickRecorder,
        cache: Optional[RedisCache] = None,
        short_code_generator: Optional[ShortCodeGenerator] = None,
        enable_custom_codes: bool = True,
        max_collision_retries: int = 5,
        password_rounds: int = 12,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize link gate service.

        Args:
            store: Link store
            resolver: Identity resolver (shares the store and cache)
            controller: Access controller
            dispatcher: Decision to action mapping
            recorder: Click recorder
            cache: Optional Redis cache, invalidated on delete
            short_code_generator: Optional short code generator
            enable_custom_codes: Whether custom aliases may be set
            max_collision_retries: Random attempts after a hash collision
            password_rounds: bcrypt cost factor for new passwords
            logger: Optional logger
        """
        self.store = store
        self.resolver = resolver
        self.controller = controller
        self.dispatcher = dispatcher
        self.recorder = recorder
        self.cache = cache
        self.generator = short_code_generator or ShortCodeGenerator()
        self.enable_custom_codes = enable_custom_codes
        self.max_collision_retries = max_collision_retries
        self.password_rounds = password_rounds
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(
        cls,
        config,
        store: LinkStoreBase,
        locator: GeoLocator,
        cache: Optional[RedisCache] = None,
        logger: Optional[logging.Logger] = None,
        **overrides,
    ) -> "LinkGateService":
        """Wire the full engine from settings."""
        logger = logger or logging.getLogger(__name__)

        classifier = BotClassifier(
            cache=TTLCache(
                ttl_seconds=config.bot_cache_ttl_seconds,
                max_entries=config.bot_cache_max_entries,
            ),
            default_diversion_url=config.default_diversion_url,
            logger=logger,
        )
        resolver = IdentityResolver(store, cache=cache, logger=logger)
        controller = AccessController(
            resolver=resolver,
            classifier=classifier,
            locator=locator,
            global_blocked_ips=normalize_block_list(config.blocked_ips),
            global_blocked_countries=normalize_block_list(config.blocked_countries),
            enable_human_challenge=config.enable_human_challenge,
            logger=logger,
        )
        issuer = ChallengeIssuer(
            secret_key=config.secret_key,
            ttl_seconds=config.challenge_ttl_seconds,
            logger=logger,
        )
        dispatcher = RedirectDispatcher(
            decoy_path=config.path_prefix.rstrip("/") + config.decoy_path,
            default_diversion_url=config.default_diversion_url,
            challenge_issuer=issuer,
            logger=logger,
        )

        return cls(
            store=store,
            resolver=resolver,
            controller=controller,
            dispatcher=dispatcher,
            recorder=ClickRecorder(store, logger=logger),
            cache=cache,
            short_code_generator=ShortCodeGenerator(config.short_code_length),
            enable_custom_codes=config.enable_custom_codes,
            max_collision_retries=config.max_collision_retries,
            logger=logger,
            **overrides,
        )

    @property
    def classifier(self) -> BotClassifier:
        return self.controller.classifier

    async def resolve_and_act(self, code: str, context: RequestContext) -> Action:
        """Decide what to do with one visit and record it when access is granted.

        Args:
            code: Raw code from the path
            context: Request context (UA, IP, referrer, password attempt)

        Returns:
            The Action for the web layer
        """
        decision = await self.controller.evaluate(code, context)
        action = self.dispatcher.dispatch(decision)

        if action.grants_access:
            self.recorder.record(decision.link, context, decision.location)

        return action

    async def complete_challenge(
        self,
        code: str,
        token: str,
        answer: Optional[str],
        interacted: bool,
        context: RequestContext,
    ) -> Action:
        """Handle a challenge submission.

        The token must have been issued to the same IP and user agent and is
        spent by this submission. A pass runs the access pipeline again, so
        bot diversion, expiry and blocks still apply before the visitor is
        sent on; a failure of either gate diverts the visitor.
        """
        code = code.strip()
        signal = self.classifier.classify(context.user_agent)
        issuer = self.dispatcher.challenge_issuer

        if issuer is None or not issuer.verify(
            code, token, answer, interacted, fingerprint=context.fingerprint
        ):
            return self.dispatcher.divert(code, signal.suggested_diversion_url)

        decision = await self.controller.evaluate(code, context, challenge_passed=True)
        action = self.dispatcher.dispatch(decision)

        if action.grants_access:
            self.recorder.record(decision.link, context, decision.location)
            self.logger.info(f"Challenge passed for {code} (ip={context.ip})")

        return action

    def classify_user_agent(self, user_agent: Optional[str]) -> BotSignal:
        return self.classifier.classify(user_agent)

    async def create_link(
        self,
        original_url: str,
        custom_code: Optional[str] = None,
        password: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        blocked_countries: Optional[Iterable[str]] = None,
        blocked_ips: Optional[Iterable[str]] = None,
        direct_link: bool = False,
        description: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> Link:
        """Create a new link.

        Args:
            original_url: Destination URL
            custom_code: Optional custom alias (resolves like the short code)
            password: Optional access password (stored as a bcrypt hash)
            expires_at: Optional expiry time (naive values are UTC)
            blocked_countries: Country names or codes to send to the decoy
            blocked_ips: IPs or CIDR ranges to send to the decoy
            direct_link: Redirect at once instead of showing the countdown page
            description: Free text
            tags: Free-form labels

        Returns:
            The created Link

        Raises:
            LinkValidationError: If any input is invalid
            ShortCodeConflictError: If the custom alias is taken
        """
        is_valid, error = is_valid_url(original_url)
        if not is_valid:
            raise LinkValidationError(f"Invalid URL: {error}")

        if custom_code:
            if not self.enable_custom_codes:
                raise LinkValidationError("Custom short codes are not enabled")
            is_valid, error = is_valid_short_code(custom_code)
            if not is_valid:
                raise LinkValidationError(f"Invalid short code: {error}")
            if await self.store.code_exists(custom_code):
                raise ShortCodeConflictError(f"Short code '{custom_code}' already exists")

        ip_rules = normalize_block_list(blocked_ips)
        invalid_rules = [rule for rule in ip_rules if not is_valid_ip_rule(rule)]
        if invalid_rules:
            raise LinkValidationError(f"Invalid IP rules: {', '.join(invalid_rules)}")

        now = datetime.now(timezone.utc)
        if expires_at is not None:
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            if expires_at <= now:
                raise LinkValidationError("Expiry must be in the future")

        password_hash = None
        if password is not None:
            if not password:
                raise LinkValidationError("Password must not be empty")
            try:
                password_hash = hash_password(password, rounds=self.password_rounds)
            except ValueError as e:
                # bcrypt rejects passwords over 72 bytes
                raise LinkValidationError(f"Invalid password: {e}") from e

        link = Link(
            id=str(uuid.uuid4()),
            short_code=await self._generate_unique_short_code(original_url),
            original_url=original_url,
            created_at=now,
            custom_code=custom_code or None,
            password_hash=password_hash,
            expires_at=expires_at,
            direct_link=direct_link,
            blocked_countries=normalize_block_list(blocked_countries),
            blocked_ips=ip_rules,
            description=description,
            tags=normalize_block_list(tags),
        )

        if not await self.store.create_link(link):
            raise ShortCodeConflictError("Failed to create link (code taken concurrently)")

        self.logger.info(
            f"Created link: {link.short_code}"
            f"{' (' + link.custom_code + ')' if link.custom_code else ''} -> {original_url}"
        )
        return link

    async def get_link_info(self, code: str) -> Optional[Link]:
        return await self.store.find_link_by_code(code.strip())

    async def delete_link(self, code: str) -> bool:
        link = await self.store.find_link_by_code(code.strip())
        if link is None:
            return False

        if self.cache:
            await self.cache.invalidate_link(link)

        deleted = await self.store.delete_link(link.id)
        if deleted:
            self.logger.info(f"Deleted link: {link.short_code}")
        return deleted

    async def list_clicks(self, code: str, limit: int = 100) -> Optional[List[Click]]:
        """Recent clicks of a link, newest first; None if the code is unknown."""
        link = await self.store.find_link_by_code(code.strip())
        if link is None:
            return None
        return await self.store.list_clicks(link.id, limit)

    async def get_statistics(self) -> Dict[str, Any]:
        store_stats = await self.store.get_statistics()
        return {
            **store_stats,
            "cache_enabled": self.cache is not None and self.cache.enabled,
            "custom_codes_enabled": self.enable_custom_codes,
            "pending_recordings": self.recorder.pending,
        }

    async def health_check(self) -> Dict[str, bool]:
        db_healthy = await self.store.health_check()

        cache_healthy = True
        if self.cache and self.cache.enabled:
            cache_healthy = await self.cache.ping()

        return {
            "database": db_healthy,
            "cache": cache_healthy,
            "overall": db_healthy and cache_healthy,
        }

    async def _generate_unique_short_code(self, original_url: str) -> str:
        """Generate a short code that is not yet used.

        Raises:
            ShortCodeConflictError: If every attempt collides
        """
        code = self.generator.generate_from_url(original_url, salt=uuid.uuid4().hex)
        if not await self.store.code_exists(code):
            return code

        for attempt in range(self.max_collision_retries):
            code = self.generator.generate()
            if not await self.store.code_exists(code):
                self.logger.debug(f"Generated code after {attempt + 1} retries: {code}")
                return code

        raise ShortCodeConflictError("Unable to generate unique short code after multiple attempts")

    async def close(self, drain_timeout: Optional[float] = 5.0) -> None:
        """Flush pending recordings and close connections."""
        await self.recorder.drain(timeout=drain_timeout)
        await self.controller.locator.close()
        await self.store.close()
        if self.cache:
            await self.cache.close()
