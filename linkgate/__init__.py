"""Short link resolution and access control."""

from .access import AccessController, AccessState, Decision
from .context import RequestContext
from .dispatcher import Action, ActionKind, RedirectDispatcher
from .service import LinkGateService
from .shortcode import ShortCodeGenerator

__all__ = [
    "AccessController",
    "AccessState",
    "Decision",
    "RequestContext",
    "Action",
    "ActionKind",
    "RedirectDispatcher",
    "LinkGateService",
    "ShortCodeGenerator",
]
