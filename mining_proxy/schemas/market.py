# mining_proxy/schemas/market.py

from pydantic import BaseModel, Field
from typing import Optional, List, Union


# Upstream payloads are passed through verbatim. These models only document
# the fields the UI relies on; unknown fields are allowed.

class CoinMarket(BaseModel):
    """One item of the market data provider's /coins/markets listing."""
    id: str
    symbol: str
    name: str
    image: Optional[str] = None
    current_price: Optional[float] = None
    market_cap: Optional[float] = None
    market_cap_rank: Optional[int] = None
    total_volume: Optional[float] = None
    price_change_percentage_1h_in_currency: Optional[float] = None
    price_change_percentage_24h_in_currency: Optional[float] = None
    price_change_percentage_7d_in_currency: Optional[float] = None

    model_config = {"extra": "allow"}


class MiningPool(BaseModel):
    name: str
    url: str
    hashrate: Optional[float] = Field(None, description="Pool hashrate in H/s, if provided")
    miners: Optional[int] = None
    pool_fee: Optional[Union[str, float]] = None

    model_config = {"extra": "allow"}


class MiningCoinData(BaseModel):
    """
    Mining pool statistics for one coin.
    The provider is unofficial and its shape varies by coin; keep it flexible.
    """
    coin: str
    symbol: Optional[str] = None
    network_hashrate: Optional[float] = Field(None, description="Network hashrate in H/s, if provided")
    pools: Optional[List[MiningPool]] = None

    model_config = {"extra": "allow"}


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    cache: str


class PingResponse(BaseModel):
    message: str
