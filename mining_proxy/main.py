# mining_proxy/main.py

import asyncio
import json
from contextlib import asynccontextmanager
import logging
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from mining_proxy.config import CORS_ORIGINS, LOG_LEVEL, PING_MESSAGE, UPSTREAM_TIMEOUT_SECONDS
from mining_proxy.responses import error_response
from mining_proxy.routers import coingecko, mining
from mining_proxy.schemas.market import HealthResponse, PingResponse
from mining_proxy.services.cache import Cache
from mining_proxy.services.cache_factory import build_cache
from mining_proxy.services.fetch_retry import Sleep
from mining_proxy.services.proxy_service import UpstreamProxy
from mining_proxy.sweeper import CacheSweeper

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_app(
    cache: Optional[Cache] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    sleep: Optional[Sleep] = None,
    sweep_interval_seconds: Optional[int] = None,
) -> FastAPI:
    """
    Build the proxy app. The cache, the outbound transport and the backoff sleep
    are injectable so tests can run against fakes without wall-clock delays.
    """
    cache = cache if cache is not None else build_cache()
    sweeper = CacheSweeper(cache, sweep_interval_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: open the upstream client and start the sweeper
        client = httpx.AsyncClient(
            timeout=UPSTREAM_TIMEOUT_SECONDS,
            follow_redirects=True,
            transport=transport,
        )
        app.state.upstream = UpstreamProxy(client, cache, sleep=sleep or asyncio.sleep)
        await sweeper.start()
        try:
            yield
        finally:
            # Shutdown: stop the sweeper, release connections
            await sweeper.stop()
            await client.aclose()
            await cache.close()

    app = FastAPI(title="Mining portfolio proxy", lifespan=lifespan)
    app.state.cache = cache
    app.state.sweeper = sweeper
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=["x-cache"],
    )
    app.include_router(coingecko.router)
    app.include_router(mining.router)

    @app.exception_handler(RequestValidationError)
    async def invalid_parameters(request: Request, exc: RequestValidationError):
        # Same {error, details} body as every other failure of the proxy endpoints
        return error_response(422, "Invalid request parameters", json.dumps(jsonable_encoder(exc.errors())))

    @app.get("/health", response_model=HealthResponse)
    def health_check(request: Request):
        return {"status": "ok", "cache": request.app.state.cache.name}

    @app.get("/api/ping", response_model=PingResponse)
    def ping():
        return {"message": PING_MESSAGE}

    return app


app = create_app()
