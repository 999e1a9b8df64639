"""Maps access decisions to concrete visitor-facing actions."""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from .access import AccessState, Decision
from .challenge import Challenge, ChallengeIssuer
from .rules.bots import DEFAULT_DIVERSION_URL


class ActionKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    DIVERT = "divert"
    DECOY = "decoy"
    PASSWORD_FORM = "password_form"
    REDIRECT = "redirect"
    INTERSTITIAL = "interstitial"
    CHALLENGE = "challenge"


@dataclass(frozen=True)
class Action:
    """What the web layer should send back."""

    kind: ActionKind
    status_code: int
    code: str
    url: Optional[str] = None
    error: bool = False
    challenge: Optional[Challenge] = None
    diversion_url: Optional[str] = None

    @property
    def grants_access(self) -> bool:
        """The visitor is being sent on to the destination; counts as a click."""
        return self.kind in (ActionKind.REDIRECT, ActionKind.INTERSTITIAL)

    @property
    def is_redirect(self) -> bool:
        return self.kind in (ActionKind.REDIRECT, ActionKind.DIVERT, ActionKind.DECOY)


class RedirectDispatcher:
    """Turns a Decision into an Action."""

    def __init__(
        self,
        decoy_path: str = "/philosophical-quotes",
        default_diversion_url: str = DEFAULT_DIVERSION_URL,
        challenge_issuer: Optional[ChallengeIssuer] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize dispatcher.

        Args:
            decoy_path: Where blocked visitors are sent (already prefixed)
            default_diversion_url: Diversion target when a decision carries none
            challenge_issuer: Issues human challenges; None grants directly
            logger: Optional logger
        """
        self.decoy_path = decoy_path
        self.default_diversion_url = default_diversion_url
        self.challenge_issuer = challenge_issuer
        self.logger = logger or logging.getLogger(__name__)

    def divert(self, code: str, diversion_url: Optional[str] = None) -> Action:
        return Action(
            kind=ActionKind.DIVERT,
            status_code=302,
            code=code,
            url=diversion_url or self.default_diversion_url,
        )

    def dispatch(self, decision: Decision) -> Action:
        state = decision.state
        code = decision.code

        if state in (AccessState.NOT_FOUND, AccessState.EXPIRED):
            # Unknown and expired codes must look the same
            return Action(kind=ActionKind.NOT_FOUND, status_code=404, code=code)

        if state == AccessState.BOT_DIVERTED:
            return self.divert(code, decision.diversion_url)

        if state == AccessState.GEO_OR_IP_BLOCKED:
            return Action(kind=ActionKind.DECOY, status_code=302, code=code, url=self.decoy_path)

        if state == AccessState.PASSWORD_REQUIRED:
            return Action(kind=ActionKind.PASSWORD_FORM, status_code=200, code=code)

        if state == AccessState.PASSWORD_REJECTED:
            return Action(kind=ActionKind.PASSWORD_FORM, status_code=401, code=code, error=True)

        if state == AccessState.GRANTED:
            if decision.requires_challenge and self.challenge_issuer is not None:
                return Action(
                    kind=ActionKind.CHALLENGE,
                    status_code=200,
                    code=code,
                    challenge=self.challenge_issuer.issue(code, decision.fingerprint or ""),
                    diversion_url=decision.diversion_url or self.default_diversion_url,
                )
            if not decision.link.direct_link:
                return Action(
                    kind=ActionKind.INTERSTITIAL,
                    status_code=200,
                    code=code,
                    url=decision.link.original_url,
                )
            return Action(
                kind=ActionKind.REDIRECT,
                status_code=307,
                code=code,
                url=decision.link.original_url,
            )

        raise ValueError(f"Unhandled access state: {state}")
