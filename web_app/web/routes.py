"""Visitor-facing routes: short link resolution and the pages around it."""

import os

from fastapi import APIRouter, Form, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from linkgate.common.headers import UNKNOWN, get_forwarded_path_prefix
from linkgate.common.url_builder import build_local_path
from linkgate.context import RequestContext
from linkgate.dispatcher import Action, ActionKind

router = APIRouter()

template_dir = os.path.join(os.path.dirname(__file__), "..", "templates")
templates = Jinja2Templates(directory=template_dir)

QUOTES = [
    ("The unexamined life is not worth living.", "Socrates"),
    ("We are what we repeatedly do. Excellence, then, is not an act, but a habit.", "Will Durant"),
    ("He who has a why to live can bear almost any how.", "Friedrich Nietzsche"),
    ("The only thing I know is that I know nothing.", "Socrates"),
    ("Happiness depends upon ourselves.", "Aristotle"),
    ("Man is condemned to be free.", "Jean-Paul Sartre"),
    ("One must imagine Sisyphus happy.", "Albert Camus"),
    ("Waste no more time arguing what a good man should be. Be one.", "Marcus Aurelius"),
]


def _path_prefix_from_request(request: Request, config) -> str:
    """Path prefix from X-Forwarded-Prefix (proxy) or config. Leading slash, no trailing."""
    prefix = get_forwarded_path_prefix(dict(request.headers))
    if prefix:
        return prefix
    p = (getattr(config, "path_prefix", "") or "").strip().strip("/")
    return "/" + p if p else ""


def _request_context(request: Request, password=None) -> RequestContext:
    return RequestContext(
        user_agent=request.headers.get("user-agent", ""),
        ip=getattr(request.state, "client_ip", None) or UNKNOWN,
        referrer=request.headers.get("referer"),
        password=password,
        headers=dict(request.headers),
    )


def render_action(request: Request, action: Action):
    """Turn an engine Action into an HTTP response."""
    config = request.app.state.config
    prefix = _path_prefix_from_request(request, config)

    if action.kind == ActionKind.REDIRECT:
        # A form POST must not be replayed against the destination
        if request.method == "POST":
            return RedirectResponse(url=action.url, status_code=status.HTTP_303_SEE_OTHER)
        return RedirectResponse(url=action.url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

    if action.kind == ActionKind.INTERSTITIAL:
        return templates.TemplateResponse(
            request,
            "interstitial.html",
            {
                "url": action.url,
                "countdown": config.interstitial_seconds,
                "home_url": build_local_path("/", prefix),
            },
            status_code=action.status_code,
        )

    if action.kind in (ActionKind.DIVERT, ActionKind.DECOY):
        return RedirectResponse(url=action.url, status_code=status.HTTP_302_FOUND)

    if action.kind == ActionKind.PASSWORD_FORM:
        return templates.TemplateResponse(
            request,
            "password.html",
            {
                "code": action.code,
                "error": action.error,
                "form_action": build_local_path(f"/{action.code}", prefix),
            },
            status_code=action.status_code,
        )

    if action.kind == ActionKind.CHALLENGE:
        return templates.TemplateResponse(
            request,
            "challenge.html",
            {
                "code": action.code,
                "question": action.challenge.question,
                "token": action.challenge.token,
                "diversion_url": action.diversion_url,
                "interaction_timeout_ms": config.challenge_interaction_timeout_seconds * 1000,
                "form_action": build_local_path(f"/{action.code}/verify", prefix),
            },
            status_code=action.status_code,
        )

    return templates.TemplateResponse(
        request,
        "not_found.html",
        {"home_url": build_local_path("/", prefix)},
        status_code=status.HTTP_404_NOT_FOUND,
    )


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def homepage(request: Request):
    prefix = _path_prefix_from_request(request, request.app.state.config)
    return templates.TemplateResponse(
        request,
        "index.html",
        {"api_docs_url": build_local_path("/api/docs", prefix)},
    )


@router.get("/health", include_in_schema=False)
async def health_check_web(request: Request):
    """Health check endpoint (simple version for load balancers)."""
    health = await request.app.state.service.health_check()

    if health["overall"]:
        return {"status": "healthy"}
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Service unhealthy",
    )


async def decoy_page(request: Request):
    """Innocuous page blocked visitors land on. Mounted at config.decoy_path by the app factory."""
    return templates.TemplateResponse(request, "quotes.html", {"quotes": QUOTES})


@router.get("/{code}", include_in_schema=False)
async def resolve_code(request: Request, code: str):
    service = request.app.state.service
    action = await service.resolve_and_act(code, _request_context(request))
    return render_action(request, action)


@router.post("/{code}", include_in_schema=False)
async def submit_password(request: Request, code: str, password: str = Form("")):
    service = request.app.state.service
    action = await service.resolve_and_act(code, _request_context(request, password=password))
    return render_action(request, action)


@router.post("/{code}/verify", include_in_schema=False)
async def verify_challenge(
    request: Request,
    code: str,
    token: str = Form(""),
    answer: str = Form(""),
    interacted: str = Form(""),
):
    service = request.app.state.service
    action = await service.complete_challenge(
        code,
        token=token,
        answer=answer,
        interacted=interacted.strip().lower() in ("1", "true", "yes"),
        context=_request_context(request),
    )
    return render_action(request, action)
