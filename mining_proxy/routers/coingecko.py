# mining_proxy/routers/coingecko.py

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from mining_proxy.config import (
    MARKETS_RETRIES,
    MARKETS_RETRY_BASE_DELAY_MS,
    MARKETS_TTL_SECONDS,
    PRICE_RETRIES,
    PRICE_RETRY_BASE_DELAY_MS,
    PRICE_TTL_SECONDS,
)
from mining_proxy.responses import error_response, get_upstream_proxy, proxied_response
from mining_proxy.schemas.market import CoinMarket, ErrorResponse
from mining_proxy.services.fetch_retry import RetryPolicy
from mining_proxy.services.proxy_service import UpstreamError, UpstreamProxy
from mining_proxy.services.upstreams import (
    MAX_PER_PAGE,
    InvalidRequestError,
    coin_markets_request,
    simple_price_request,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/coingecko", tags=["market-data"])

MARKETS_POLICY = RetryPolicy(retries=MARKETS_RETRIES, base_delay_ms=MARKETS_RETRY_BASE_DELAY_MS)
PRICE_POLICY = RetryPolicy(retries=PRICE_RETRIES, base_delay_ms=PRICE_RETRY_BASE_DELAY_MS)

_ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


@router.get("/markets", responses={200: {"model": List[CoinMarket]}, **_ERROR_RESPONSES})
async def coin_markets(
    ids: Optional[str] = None,
    vs_currency: str = "usd",
    per_page: int = Query(MAX_PER_PAGE, ge=1),
    page: int = Query(1, ge=1),
    proxy: UpstreamProxy = Depends(get_upstream_proxy),
):
    """
    GET /api/coingecko/markets?ids=bitcoin,ethereum&vs_currency=usd
    Market listing for the given coin ids, cached for MARKETS_TTL_SECONDS.

    Status codes:
      - 200: upstream payload (fresh, cache hit or stale)
      - 400: ids missing
      - 4xx/5xx: propagated upstream error, {error, details}
      - 500: unexpected failure
    """
    try:
        request = coin_markets_request(ids, vs_currency, per_page, page)
    except InvalidRequestError as ex:
        return error_response(400, str(ex), "Query parameter 'ids' is required")

    try:
        result = await proxy.get_json(request, ttl_seconds=MARKETS_TTL_SECONDS, policy=MARKETS_POLICY)
    except UpstreamError as ex:
        return error_response(ex.status_code, "CoinGecko error", ex.body)
    except Exception as ex:
        logger.exception("coingecko markets failed: %s", ex)
        return error_response(500, "Failed to fetch CoinGecko markets", str(ex))
    return proxied_response(result)


@router.get("/price", responses={200: {"model": Dict[str, Dict[str, float]]}, **_ERROR_RESPONSES})
async def simple_price(
    ids: Optional[str] = None,
    vs_currencies: str = "usd",
    proxy: UpstreamProxy = Depends(get_upstream_proxy),
):
    """
    GET /api/coingecko/price?ids=bitcoin,ethereum&vs_currencies=usd
    Quick price lookup with market cap, 24h volume and 24h change.
    """
    try:
        request = simple_price_request(ids, vs_currencies)
    except InvalidRequestError as ex:
        return error_response(400, str(ex), "Query parameter 'ids' is required")

    try:
        result = await proxy.get_json(request, ttl_seconds=PRICE_TTL_SECONDS, policy=PRICE_POLICY)
    except UpstreamError as ex:
        return error_response(ex.status_code, "CoinGecko error", ex.body)
    except Exception as ex:
        logger.exception("coingecko price failed: %s", ex)
        return error_response(500, "Failed to fetch CoinGecko price", str(ex))
    return proxied_response(result)
