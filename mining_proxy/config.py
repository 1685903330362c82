# mining_proxy/config.py
import os

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PING_MESSAGE = os.getenv("PING_MESSAGE", "ping")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Upstream providers
MARKET_DATA_BASE_URL = os.getenv("MARKET_DATA_BASE_URL", "https://api.coingecko.com/api/v3").rstrip("/")
MINING_STATS_BASE_URL = os.getenv("MINING_STATS_BASE_URL", "https://miningpoolstats.stream/api/coin").rstrip("/")
COINGECKO_API_KEY = os.getenv("COINGECKO_API_KEY", "")

# Per-attempt connect/read timeout; the retry sequence as a whole is unbounded.
UPSTREAM_TIMEOUT_SECONDS = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "10"))

# Freshness per endpoint (seconds)
PRICE_TTL_SECONDS = int(os.getenv("PRICE_TTL_SECONDS", "30"))
MARKETS_TTL_SECONDS = int(os.getenv("MARKETS_TTL_SECONDS", "60"))
MINING_TTL_SECONDS = int(os.getenv("MINING_TTL_SECONDS", "120"))

# Retry policy per endpoint: additional attempts after the first, backoff base in ms
PRICE_RETRIES = int(os.getenv("PRICE_RETRIES", "2"))
PRICE_RETRY_BASE_DELAY_MS = int(os.getenv("PRICE_RETRY_BASE_DELAY_MS", "500"))
MARKETS_RETRIES = int(os.getenv("MARKETS_RETRIES", "2"))
MARKETS_RETRY_BASE_DELAY_MS = int(os.getenv("MARKETS_RETRY_BASE_DELAY_MS", "500"))
MINING_RETRIES = int(os.getenv("MINING_RETRIES", "2"))
MINING_RETRY_BASE_DELAY_MS = int(os.getenv("MINING_RETRY_BASE_DELAY_MS", "500"))

# Cache configuration:
#   CACHE_BACKEND: "none" | "memory" | "redis"
#   CACHE_CAPACITY: max number of items (memory backend only)
#   CACHE_STALE_RETENTION_SECONDS: how long an expired entry stays available
#     for stale fallback; 0 means until overwritten or evicted by capacity
#   CACHE_SWEEP_INTERVAL_SECONDS: how often stale entries are purged; 0 disables
CACHE_BACKEND = os.getenv("CACHE_BACKEND", "memory").lower()
CACHE_CAPACITY = int(os.getenv("CACHE_CAPACITY", "10000"))
CACHE_STALE_RETENTION_SECONDS = int(os.getenv("CACHE_STALE_RETENTION_SECONDS", "3600"))
CACHE_SWEEP_INTERVAL_SECONDS = int(os.getenv("CACHE_SWEEP_INTERVAL_SECONDS", "300"))

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
CACHE_KEY_PREFIX = os.getenv("CACHE_KEY_PREFIX", "mining-proxy:")
