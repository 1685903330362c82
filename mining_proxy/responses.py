# mining_proxy/responses.py

from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from mining_proxy.schemas.market import ErrorResponse
from mining_proxy.services.cache import CacheStatus
from mining_proxy.services.proxy_service import ProxyResult, UpstreamProxy


def get_upstream_proxy(request: Request) -> UpstreamProxy:
    """Dependency: the proxy built by the app lifespan."""
    return request.app.state.upstream


def proxied_response(result: ProxyResult) -> JSONResponse:
    """
    Upstream JSON verbatim, tagged with how it was served:
      - fresh fetch -> Cache-Control: public, max-age=<ttl>
      - cache hit   -> x-cache: hit
      - stale copy  -> x-cache: stale
    """
    if result.cache_status is CacheStatus.MISS:
        headers = {"Cache-Control": f"public, max-age={result.ttl_seconds}"}
    else:
        headers = {"x-cache": result.cache_status.value}
    return JSONResponse(status_code=200, content=result.payload, headers=headers)


def error_response(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)
