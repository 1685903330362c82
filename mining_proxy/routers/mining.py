# mining_proxy/routers/mining.py

import logging

from fastapi import APIRouter, Depends

from mining_proxy.config import MINING_RETRIES, MINING_RETRY_BASE_DELAY_MS, MINING_TTL_SECONDS
from mining_proxy.responses import error_response, get_upstream_proxy, proxied_response
from mining_proxy.schemas.market import ErrorResponse, MiningCoinData
from mining_proxy.services.fetch_retry import RetryPolicy
from mining_proxy.services.proxy_service import UpstreamError, UpstreamProxy
from mining_proxy.services.upstreams import InvalidRequestError, mining_coin_request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/mining", tags=["mining"])

MINING_POLICY = RetryPolicy(retries=MINING_RETRIES, base_delay_ms=MINING_RETRY_BASE_DELAY_MS)


@router.get(
    "/coin/{slug}",
    responses={200: {"model": MiningCoinData}, 400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def mining_coin(slug: str, proxy: UpstreamProxy = Depends(get_upstream_proxy)):
    """
    GET /api/mining/coin/{slug}
    Pool and network hashrate statistics for one coin (e.g. monero, kaspa, ravencoin).

    The provider's endpoint is unofficial and its schema changes without notice,
    so the payload is passed through untouched.
    """
    try:
        request = mining_coin_request(slug)
    except InvalidRequestError as ex:
        return error_response(400, str(ex), "Path parameter 'slug' must not be blank")

    try:
        result = await proxy.get_json(request, ttl_seconds=MINING_TTL_SECONDS, policy=MINING_POLICY)
    except UpstreamError as ex:
        return error_response(ex.status_code, "MiningPoolStats error", ex.body)
    except Exception as ex:
        logger.exception("mining coin %s failed: %s", slug, ex)
        return error_response(500, "Failed to fetch MiningPoolStats coin data", str(ex))
    return proxied_response(result)
