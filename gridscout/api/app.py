"""HTTP surface: scout runs plus thin proxies over the GRID APIs."""

from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError

from gridscout.clients.base_client import (
    AuthenticationError,
    CallContext,
    GridError,
    UpstreamQueryError,
    UpstreamTimeout,
)
from gridscout.clients.central_data import CentralDataClient
from gridscout.clients.file_download import FileDownloadClient
from gridscout.clients.introspection import (
    IntrospectionCache,
    IntrospectionError,
    SchemaIntrospector,
    summarize_fields,
)
from gridscout.clients.series_state import SeriesStateClient
from gridscout.config.settings import AppSettings, settings as default_settings
from gridscout.discovery.tournaments import apply_whitelist
from gridscout.models.enums import DataSource, ResponseCode
from gridscout.models.report import ScoutRequest
from gridscout.scouting.service import ScoutService

router = APIRouter()

HEALTH_CHECK_TEAM = "Cloud9"


def _error(code: str, status_code: int, error: Optional[str] = None, **extra: Any) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "code": code}
    if error:
        body["error"] = error
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


def _missing_api_key() -> JSONResponse:
    return _error(ResponseCode.MISSING_API_KEY.value, 503)


def _required(param: str) -> JSONResponse:
    code = "".join("_" + c if c.isupper() else c.upper() for c in param).lstrip("_") + "_REQUIRED"
    return _error(code, 400, f"{param} query parameter is required")


def _upstream_error(e: GridError) -> JSONResponse:
    if isinstance(e, AuthenticationError):
        code = ResponseCode.UNAUTHORIZED if e.status_code == 401 else ResponseCode.FORBIDDEN
        return _error(code.value, e.status_code, f"HTTP {e.status_code}: authentication or authorization failed")
    if isinstance(e, UpstreamTimeout):
        return _error(ResponseCode.TIMEOUT.value, 504, "Request timeout")
    return _error(ResponseCode.GRID_FETCH_FAILED.value, 502, str(e)[:200])


def _settings(request: Request) -> AppSettings:
    return request.app.state.settings


def _http_client(request: Request) -> httpx.AsyncClient:
    app_settings = _settings(request)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(app_settings.grid_request_timeout),
        transport=request.app.state.transport,
        follow_redirects=True,
    )


def _ctx(request: Request) -> CallContext:
    return CallContext.with_timeout(_settings(request).grid_request_timeout)


@router.post("/api/scout")
async def scout(request: Request):
    """Builds a scouting report for ``teamId``. The status follows the response code."""
    try:
        body = await request.json()
        scout_request = ScoutRequest.model_validate(body)
    except (ValueError, ValidationError) as e:
        message = f"{e.error_count()} invalid fields" if isinstance(e, ValidationError) else "Body is not valid JSON"
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "code": ResponseCode.INVALID_REQUEST.value,
                "message": message,
                "source": DataSource.GRID.value,
            },
        )

    service = ScoutService(_settings(request), transport=request.app.state.transport)
    status_code, response = await service.scout(scout_request)
    return JSONResponse(status_code=status_code, content=response.to_wire())


@router.get("/api/teams")
async def search_teams(request: Request, q: str = "", limit: int = 10):
    """Team search by name. An empty query returns no teams without calling GRID."""
    if not q.strip():
        return {"success": True, "source": DataSource.GRID.value, "teams": []}
    if not _settings(request).has_api_key:
        return _missing_api_key()

    async with _http_client(request) as http:
        client = CentralDataClient(_settings(request), http)
        try:
            teams = await client.search_teams(q.strip(), first=max(1, min(limit, 50)), ctx=_ctx(request))
        except GridError as e:
            logger.error(f"Team search failed: {e}")
            return _upstream_error(e)
    return {"success": True, "source": DataSource.GRID.value, "teams": [t.to_wire() for t in teams]}


@router.get("/api/grid/titles")
async def list_titles(request: Request):
    if not _settings(request).has_api_key:
        return _missing_api_key()
    async with _http_client(request) as http:
        try:
            titles = await CentralDataClient(_settings(request), http).list_titles(ctx=_ctx(request))
        except GridError as e:
            logger.error(f"Titles API error: {e}")
            return _upstream_error(e)
    return {"success": True, "source": DataSource.GRID.value, "titles": titles}


@router.get("/api/grid/tournaments")
async def list_tournaments(request: Request, title_id: Optional[str] = Query(None, alias="titleId")):
    """Tournaments of a title, restricted to the whitelist when it is enabled."""
    if not title_id:
        return _required("titleId")
    app_settings = _settings(request)
    if not app_settings.has_api_key:
        return _missing_api_key()

    async with _http_client(request) as http:
        try:
            tournaments, total = await CentralDataClient(app_settings, http).list_tournaments(
                title_id, ctx=_ctx(request)
            )
        except GridError as e:
            logger.error(f"Tournaments API error: {e}")
            return _upstream_error(e)

    selected = apply_whitelist(tournaments, app_settings)
    return {
        "success": True,
        "source": DataSource.GRID.value,
        "tournaments": [t.to_wire() for t in selected],
        "totalCount": len(selected),
        "totalCountUnfiltered": total,
    }


@router.get("/api/grid/file-download/list")
async def list_series_files(request: Request, series_id: Optional[str] = Query(None, alias="seriesId")):
    if not series_id:
        return _required("seriesId")
    if not _settings(request).has_api_key:
        return _missing_api_key()

    async with _http_client(request) as http:
        try:
            files = await FileDownloadClient(_settings(request), http).list_files(series_id, ctx=_ctx(request))
        except GridError as e:
            logger.error(f"File Download list error for {series_id}: {e}")
            return _upstream_error(e)
    return {"success": True, "files": [f.to_wire() for f in files]}


@router.get("/api/grid/series-state")
async def get_series_state(request: Request, series_id: Optional[str] = Query(None, alias="seriesId")):
    if not series_id:
        return _required("seriesId")
    if not _settings(request).has_api_key:
        return _missing_api_key()

    async with _http_client(request) as http:
        try:
            state = await SeriesStateClient(_settings(request), http).get_series_state(
                series_id, ctx=_ctx(request)
            )
        except UpstreamQueryError as e:
            return _error(ResponseCode.GRAPHQL_ERROR.value, 502, ", ".join(e.messages))
        except GridError as e:
            logger.error(f"Series State error for {series_id}: {e}")
            return _upstream_error(e)

    if state is None:
        return {"success": False, "code": ResponseCode.NO_STATE.value}
    return {"success": True, "state": state}


@router.get("/api/grid/health")
async def health(request: Request):
    """Connectivity check: a small team search against Central Data."""
    if not _settings(request).has_api_key:
        return _missing_api_key()
    async with _http_client(request) as http:
        try:
            teams = await CentralDataClient(_settings(request), http).search_teams(
                HEALTH_CHECK_TEAM, first=5, ctx=_ctx(request)
            )
        except GridError as e:
            # Every upstream failure is a failed health check
            return _error(ResponseCode.GRID_FETCH_FAILED.value, 502, str(e)[:200])
    return {"success": True, "source": DataSource.GRID.value, "teams": [t.to_wire() for t in teams]}


@router.get("/api/grid/introspect")
async def introspect(request: Request):
    """Fields of ``Series``, ``SeriesFilter`` and ``SeriesOrderBy``; nothing else is exposed."""
    if not _settings(request).has_api_key:
        return _missing_api_key()

    async with _http_client(request) as http:
        introspector = SchemaIntrospector(
            CentralDataClient(_settings(request), http), request.app.state.introspection_cache
        )
        try:
            types = await introspector.introspect_series_types(ctx=_ctx(request))
        except IntrospectionError as e:
            logger.error(f"Introspection failed for {e.type_name}: {e}")
            return _error(
                ResponseCode.INTROSPECTION_FAILED.value,
                502,
                str(e),
                details={"which": e.type_name, "httpStatus": e.status_code},
            )

    series_type = types["seriesType"]
    series_filter = types["seriesFilter"]
    series_order_by = types["seriesOrderBy"]
    return {
        "success": True,
        "seriesType": {"name": series_type.get("name"), "fields": summarize_fields(series_type.get("fields"))},
        "seriesFilter": {
            "name": series_filter.get("name"),
            "inputFields": summarize_fields(series_filter.get("inputFields")),
        },
        "seriesOrderBy": {
            "name": series_order_by.get("name"),
            "enumValues": [v.get("name") for v in series_order_by.get("enumValues") or []],
        },
    }


def create_app(
    app_settings: Optional[AppSettings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Builds the app. ``transport`` replaces the network for every upstream call."""
    app_settings = app_settings or default_settings
    app = FastAPI(title="gridscout", description="Esports scouting reports from GRID data")
    app.state.settings = app_settings
    app.state.transport = transport
    app.state.introspection_cache = IntrospectionCache(app_settings.introspection_cache_ttl_seconds)
    app.include_router(router)
    return app


app = create_app()
