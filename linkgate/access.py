"""Access controller: the ordered decision pipeline.

A visit runs through a fixed list of guard stages. Each stage either returns
``None`` to let the next stage run, or a terminal ``Decision``. The order is
the precedence contract:

1. resolve_identity        -> NOT_FOUND / EXPIRED
2. divert_obvious_bots     -> BOT_DIVERTED (confidence >= 95, nothing else runs)
3. locate_visitor          -> never terminal; unknown location on failure
4. enforce_network_blocks  -> GEO_OR_IP_BLOCKED (IP rules, then country rules)
5. require_password        -> PASSWORD_REQUIRED
6. check_password          -> PASSWORD_REJECTED
7. grant                   -> GRANTED (possibly behind a human challenge)

A solved challenge re-runs the same pipeline with ``challenge_passed`` set.
Stages 1 to 4 run again, so an expired link, an obvious bot or a block still
wins. The password stages are skipped: challenges are only issued after them.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence

from .context import RequestContext
from .database.models import Link
from .errors import NotResolvable
from .geolocation import GeoLocator, Location
from .passwords import verify_password as bcrypt_verify_password
from .resolver import IdentityResolver
from .rules.bots import BotClassifier, BotSignal
from .rules.geo import is_country_blocked
from .rules.network import is_ip_blocked


class AccessState(str, enum.Enum):
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    BOT_DIVERTED = "bot_diverted"
    GEO_OR_IP_BLOCKED = "geo_or_ip_blocked"
    PASSWORD_REQUIRED = "password_required"
    PASSWORD_REJECTED = "password_rejected"
    GRANTED = "granted"


@dataclass
class Decision:
    """Terminal outcome of the pipeline."""

    state: AccessState
    code: str
    link: Optional[Link] = None
    bot_signal: Optional[BotSignal] = None
    location: Optional[Location] = None
    diversion_url: Optional[str] = None
    requires_challenge: bool = False
    reason: Optional[str] = None
    fingerprint: Optional[str] = None


@dataclass
class Evaluation:
    """Working state shared by the stages of one evaluation."""

    code: str
    context: RequestContext
    link: Optional[Link] = None
    bot_signal: Optional[BotSignal] = None
    location: Optional[Location] = None
    challenge_passed: bool = False
    trace: List[str] = field(default_factory=list)

    def decide(self, state: AccessState, **kwargs) -> Decision:
        return Decision(
            state=state,
            code=self.code,
            link=self.link,
            bot_signal=self.bot_signal,
            location=self.location,
            **kwargs,
        )


Stage = Callable[[Evaluation], Awaitable[Optional[Decision]]]
PasswordVerifier = Callable[[str, str], Awaitable[bool]]


class AccessController:
    """Runs the guard stages in order and returns the first terminal decision."""

    def __init__(
        self,
        resolver: IdentityResolver,
        classifier: BotClassifier,
        locator: GeoLocator,
        password_verifier: PasswordVerifier = bcrypt_verify_password,
        global_blocked_ips: Optional[Sequence[str]] = None,
        global_blocked_countries: Optional[Sequence[str]] = None,
        enable_human_challenge: bool = True,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize controller.

        Args:
            resolver: Identity resolver
            classifier: Bot classifier
            locator: Geolocation for the visitor's IP
            password_verifier: async (submitted, stored_hash) -> bool
            global_blocked_ips: IP / CIDR rules applied to every link
            global_blocked_countries: Country rules applied to every link
            enable_human_challenge: Challenge borderline bot scores at GRANTED
            logger: Optional logger
        """
        self.resolver = resolver
        self.classifier = classifier
        self.locator = locator
        self.password_verifier = password_verifier
        self.global_blocked_ips = list(global_blocked_ips or [])
        self.global_blocked_countries = list(global_blocked_countries or [])
        self.enable_human_challenge = enable_human_challenge
        self.logger = logger or logging.getLogger(__name__)

        self.stages: List[Stage] = [
            self.resolve_identity,
            self.divert_obvious_bots,
            self.locate_visitor,
            self.enforce_network_blocks,
            self.require_password,
            self.check_password,
            self.grant,
        ]

    async def evaluate(
        self,
        code: str,
        context: RequestContext,
        challenge_passed: bool = False,
    ) -> Decision:
        """Run the pipeline for one visit.

        Args:
            code: Raw code from the path
            context: Request context
            challenge_passed: The visitor just solved a challenge for this code
        """
        evaluation = Evaluation(
            code=(code or "").strip(),
            context=context,
            challenge_passed=challenge_passed,
        )

        for stage in self.stages:
            evaluation.trace.append(stage.__name__)
            decision = await stage(evaluation)
            if decision is not None:
                self.logger.info(
                    f"Decision for {evaluation.code}: {decision.state.value} "
                    f"(ip={context.ip}, stages={','.join(evaluation.trace)})"
                )
                return decision

        # grant() always decides; reaching here means the stage list was altered
        raise RuntimeError("Access pipeline ended without a decision")

    async def resolve_identity(self, evaluation: Evaluation) -> Optional[Decision]:
        resolution = await self.resolver.resolve(evaluation.code)
        if not resolution.found:
            state = (
                AccessState.EXPIRED
                if resolution.reason == NotResolvable.EXPIRED
                else AccessState.NOT_FOUND
            )
            return evaluation.decide(state, reason=resolution.reason)

        evaluation.link = resolution.link
        return None

    async def divert_obvious_bots(self, evaluation: Evaluation) -> Optional[Decision]:
        signal = self.classifier.classify(evaluation.context.user_agent)
        evaluation.bot_signal = signal

        if signal.should_divert:
            return evaluation.decide(
                AccessState.BOT_DIVERTED,
                diversion_url=signal.suggested_diversion_url,
                reason=f"{signal.bot_type} bot ({signal.confidence})",
            )
        return None

    async def locate_visitor(self, evaluation: Evaluation) -> Optional[Decision]:
        evaluation.location = await self.locator.locate(evaluation.context.ip)
        return None

    async def enforce_network_blocks(self, evaluation: Evaluation) -> Optional[Decision]:
        link = evaluation.link
        ip = evaluation.context.ip

        ip_rules = list(link.blocked_ips) + self.global_blocked_ips
        if is_ip_blocked(ip, ip_rules):
            self.logger.info(f"IP block for {evaluation.code}: {ip}")
            return evaluation.decide(AccessState.GEO_OR_IP_BLOCKED, reason="ip")

        country = evaluation.location.country if evaluation.location else None
        country_rules = list(link.blocked_countries) + self.global_blocked_countries
        if is_country_blocked(country, country_rules):
            self.logger.info(f"Geo block for {evaluation.code}: {country} ({ip})")
            return evaluation.decide(AccessState.GEO_OR_IP_BLOCKED, reason="country")

        return None

    async def require_password(self, evaluation: Evaluation) -> Optional[Decision]:
        if evaluation.challenge_passed:
            return None
        if evaluation.link.requires_password and not evaluation.context.password_supplied:
            return evaluation.decide(AccessState.PASSWORD_REQUIRED)
        return None

    async def check_password(self, evaluation: Evaluation) -> Optional[Decision]:
        if evaluation.challenge_passed or not evaluation.link.requires_password:
            return None

        try:
            valid = await self.password_verifier(
                evaluation.context.password, evaluation.link.password_hash
            )
        except Exception as e:
            self.logger.error(f"Password verification error for {evaluation.code}: {e}")
            valid = False

        if not valid:
            return evaluation.decide(AccessState.PASSWORD_REJECTED)
        return None

    async def grant(self, evaluation: Evaluation) -> Optional[Decision]:
        signal = evaluation.bot_signal
        requires_challenge = bool(
            self.enable_human_challenge
            and not evaluation.challenge_passed
            and signal is not None
            and signal.needs_challenge
        )
        return evaluation.decide(
            AccessState.GRANTED,
            requires_challenge=requires_challenge,
            diversion_url=signal.suggested_diversion_url if signal else None,
            fingerprint=evaluation.context.fingerprint,
        )
