"""Forwarded headers middleware."""

from typing import Callable, Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from linkgate.common.headers import extract_forwarded_headers, resolve_client_ip


class ForwardedHeadersMiddleware(BaseHTTPMiddleware):
    """Stores X-Forwarded-* values and the resolved client IP on request.state.

    The client IP only comes from forwarded headers when ``trust_forwarded``
    is set or the direct peer is one of ``trusted_proxies``.
    """

    def __init__(
        self,
        app,
        trust_forwarded: bool = False,
        trusted_proxies: Optional[Iterable[str]] = None,
    ):
        super().__init__(app)
        self.trust_forwarded = trust_forwarded
        self.trusted_proxies = list(trusted_proxies or [])

    async def dispatch(self, request: Request, call_next: Callable):
        headers = dict(request.headers)
        forwarded = extract_forwarded_headers(headers)
        request.state.forwarded_proto = forwarded["forwarded_proto"]
        request.state.forwarded_host = forwarded["forwarded_host"]
        request.state.forwarded_for = forwarded["forwarded_for"]
        request.state.client_ip = resolve_client_ip(
            headers,
            peer_host=request.client.host if request.client else None,
            trust_forwarded=self.trust_forwarded,
            trusted_proxies=self.trusted_proxies,
        )

        return await call_next(request)
