"""API routes implementation."""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from linkgate.common.headers import build_base_url
from linkgate.common.url_builder import build_short_url
from linkgate.database.models import Link
from linkgate.errors import LinkValidationError, ShortCodeConflictError

from .schemas import (
    BotCheckResponse,
    ClickResponse,
    ClicksResponse,
    CreateLinkRequest,
    ErrorResponse,
    HealthResponse,
    LinkResponse,
    StatisticsResponse,
)

router = APIRouter()


async def require_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(None),
) -> None:
    """Reject management calls without the configured key (open when none is set)."""
    expected = request.app.state.config.api_key
    if expected and x_api_key != expected:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )


def _link_response(request: Request, link: Link) -> LinkResponse:
    config = request.app.state.config
    base_url = build_base_url(
        headers=dict(request.headers),
        fallback_base_url=config.base_url,
        request_scheme=request.url.scheme,
        request_host=request.headers.get("host"),
    )
    data = link.to_dict()
    data.pop("id", None)
    return LinkResponse(
        short_url=build_short_url(link.short_code, base_url, config.path_prefix),
        **data,
    )


@router.post(
    "/links",
    response_model=LinkResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_api_key)],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        409: {"model": ErrorResponse, "description": "Short code already exists"},
    },
    summary="Create link",
)
async def create_link(request: Request, body: CreateLinkRequest):
    service = request.app.state.service

    try:
        link = await service.create_link(
            original_url=body.url,
            custom_code=body.custom_code,
            password=body.password,
            expires_at=body.expires_at,
            blocked_countries=body.blocked_countries,
            blocked_ips=body.blocked_ips,
            direct_link=body.direct_link,
            description=body.description,
            tags=body.tags,
        )
    except ShortCodeConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except LinkValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return _link_response(request, link)


@router.get(
    "/links/{code}",
    response_model=LinkResponse,
    dependencies=[Depends(require_api_key)],
    responses={404: {"model": ErrorResponse, "description": "Code not found"}},
    summary="Get link information",
)
async def get_link_info(request: Request, code: str):
    link = await request.app.state.service.get_link_info(code)
    if link is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Code '{code}' not found",
        )
    return _link_response(request, link)


@router.delete(
    "/links/{code}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_api_key)],
    responses={404: {"model": ErrorResponse, "description": "Code not found"}},
    summary="Delete link",
)
async def delete_link(request: Request, code: str):
    if not await request.app.state.service.delete_link(code):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Code '{code}' not found",
        )


@router.get(
    "/links/{code}/clicks",
    response_model=ClicksResponse,
    dependencies=[Depends(require_api_key)],
    responses={404: {"model": ErrorResponse, "description": "Code not found"}},
    summary="List recent clicks",
)
async def list_clicks(
    request: Request,
    code: str,
    limit: int = Query(100, ge=1, le=1000),
):
    clicks = await request.app.state.service.list_clicks(code, limit=limit)
    if clicks is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Code '{code}' not found",
        )
    return ClicksResponse(
        short_code=code,
        count=len(clicks),
        clicks=[ClickResponse(**click.to_dict()) for click in clicks],
    )


@router.get(
    "/bot-check",
    response_model=BotCheckResponse,
    summary="Classify the caller's user agent",
)
async def bot_check(request: Request):
    signal = request.app.state.service.classify_user_agent(request.headers.get("user-agent"))
    return BotCheckResponse(**signal.to_dict())


@router.get(
    "/stats",
    response_model=StatisticsResponse,
    dependencies=[Depends(require_api_key)],
    summary="Get statistics",
)
async def get_statistics(request: Request):
    stats = await request.app.state.service.get_statistics()
    return StatisticsResponse(**stats)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health_check(request: Request):
    health = await request.app.state.service.health_check()

    return HealthResponse(
        status="healthy" if health["overall"] else "unhealthy",
        database="healthy" if health["database"] else "unhealthy",
        cache="healthy" if health["cache"] else "unhealthy",
        timestamp=datetime.now(timezone.utc),
    )
