# mining_proxy/services/upstreams.py

from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import quote

from mining_proxy.config import COINGECKO_API_KEY, MARKET_DATA_BASE_URL, MINING_STATS_BASE_URL

MAX_PER_PAGE = 250


class InvalidRequestError(ValueError):
    """Required identifying input is missing or empty."""


@dataclass(frozen=True)
class UpstreamRequest:
    """
    A canonical outbound request.
    `endpoint` + `key_params` identify it in the cache; `url` + `params` go on the wire.
    """
    endpoint: str
    url: str
    params: Dict[str, str] = field(default_factory=dict)
    key_params: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)


def normalize_ids(raw: Optional[str]) -> str:
    """'Ethereum, bitcoin,,bitcoin' -> 'bitcoin,ethereum'"""
    ids = {part.strip().lower() for part in (raw or "").split(",")}
    ids.discard("")
    return ",".join(sorted(ids))


def _currencies(raw: Optional[str]) -> str:
    return normalize_ids(raw) or "usd"


def _market_headers() -> Dict[str, str]:
    headers = {"accept": "application/json"}
    if COINGECKO_API_KEY:
        headers["x-cg-demo-api-key"] = COINGECKO_API_KEY
    return headers


def coin_markets_request(ids: Optional[str], vs_currency: Optional[str] = "usd",
                         per_page: int = MAX_PER_PAGE, page: int = 1) -> UpstreamRequest:
    coin_ids = normalize_ids(ids)
    if not coin_ids:
        raise InvalidRequestError("Missing coin ids")
    params = {
        "ids": coin_ids,
        "vs_currency": (vs_currency or "usd").strip().lower() or "usd",
        "per_page": str(min(per_page, MAX_PER_PAGE)),
        "page": str(page),
        "sparkline": "false",
        "price_change_percentage": "1h,24h,7d",
    }
    return UpstreamRequest(
        endpoint="coingecko:markets",
        url=f"{MARKET_DATA_BASE_URL}/coins/markets",
        params=params,
        key_params=params,
        headers=_market_headers(),
    )


def simple_price_request(ids: Optional[str], vs_currencies: Optional[str] = "usd") -> UpstreamRequest:
    coin_ids = normalize_ids(ids)
    if not coin_ids:
        raise InvalidRequestError("Missing coin ids")
    params = {
        "ids": coin_ids,
        "vs_currencies": _currencies(vs_currencies),
        "include_market_cap": "true",
        "include_24hr_vol": "true",
        "include_24hr_change": "true",
    }
    return UpstreamRequest(
        endpoint="coingecko:price",
        url=f"{MARKET_DATA_BASE_URL}/simple/price",
        params=params,
        key_params=params,
        headers=_market_headers(),
    )


def mining_coin_request(slug: Optional[str]) -> UpstreamRequest:
    clean = (slug or "").strip().lower()
    if not clean:
        raise InvalidRequestError("Missing coin slug")
    return UpstreamRequest(
        endpoint="miningpoolstats:coin",
        url=f"{MINING_STATS_BASE_URL}/{quote(clean, safe='')}",
        key_params={"slug": clean},
        headers={"accept": "application/json"},
    )
