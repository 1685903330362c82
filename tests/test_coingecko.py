# tests/test_coingecko.py
import httpx

MARKETS = "/api/v3/coins/markets"
PRICE = "/api/v3/simple/price"

BTC_MARKET = [{
    "id": "bitcoin",
    "symbol": "btc",
    "name": "Bitcoin",
    "current_price": 64000.5,
    "market_cap": 1.2e12,
    "market_cap_rank": 1,
    "total_volume": 3.1e10,
    "some_new_field": {"kept": True},
}]


def test_markets_second_request_is_a_cache_hit(client, upstream):
    upstream.script(MARKETS, httpx.Response(200, json=BTC_MARKET))

    first = client.get("/api/coingecko/markets", params={"ids": "bitcoin"})
    assert first.status_code == 200
    assert first.json() == BTC_MARKET
    assert first.headers["cache-control"] == "public, max-age=60"
    assert "x-cache" not in first.headers

    second = client.get("/api/coingecko/markets", params={"ids": "bitcoin"})
    assert second.status_code == 200
    assert second.json() == BTC_MARKET
    assert second.headers["x-cache"] == "hit"

    # zero additional upstream calls
    assert len(upstream.calls) == 1


def test_markets_builds_canonical_upstream_query(client, upstream):
    upstream.script(MARKETS, httpx.Response(200, json=[]))

    res = client.get(
        "/api/coingecko/markets",
        params={"ids": "Ethereum, bitcoin", "vs_currency": "EUR", "per_page": 1000, "page": 2},
    )
    assert res.status_code == 200

    sent = upstream.calls[0]
    assert sent.url.params["ids"] == "bitcoin,ethereum"
    assert sent.url.params["vs_currency"] == "eur"
    assert sent.url.params["per_page"] == "250"
    assert sent.url.params["page"] == "2"
    assert sent.url.params["sparkline"] == "false"
    assert sent.url.params["price_change_percentage"] == "1h,24h,7d"
    assert sent.headers["accept"] == "application/json"


def test_logically_identical_requests_share_cache_entry(client, upstream):
    upstream.script(MARKETS, httpx.Response(200, json=BTC_MARKET))

    client.get("/api/coingecko/markets", params={"ids": "bitcoin,ethereum", "vs_currency": "usd"})
    res = client.get("/api/coingecko/markets", params={"vs_currency": "USD", "ids": "ethereum,bitcoin"})

    assert res.headers["x-cache"] == "hit"
    assert len(upstream.calls) == 1


def test_markets_missing_ids_is_client_error_without_network(client, upstream):
    res = client.get("/api/coingecko/markets")
    assert res.status_code == 400
    assert res.json()["error"] == "Missing coin ids"

    res = client.get("/api/coingecko/markets", params={"ids": " , "})
    assert res.status_code == 400
    assert upstream.calls == []


def test_price_missing_ids_is_client_error_without_network(client, upstream):
    res = client.get("/api/coingecko/price")
    assert res.status_code == 400
    assert upstream.calls == []


def test_price_lookup_uses_fixed_flags_and_short_ttl(client, upstream):
    body = {"bitcoin": {"usd": 64000, "usd_market_cap": 1.2e12, "usd_24h_vol": 3e10, "usd_24h_change": 1.5}}
    upstream.script(PRICE, httpx.Response(200, json=body))

    res = client.get("/api/coingecko/price", params={"ids": "bitcoin"})
    assert res.status_code == 200
    assert res.json() == body
    assert res.headers["cache-control"] == "public, max-age=30"

    sent = upstream.calls[0].url.params
    assert sent["vs_currencies"] == "usd"
    assert sent["include_market_cap"] == "true"
    assert sent["include_24hr_vol"] == "true"
    assert sent["include_24hr_change"] == "true"


def test_price_expires_after_ttl(client, upstream, clock):
    upstream.script(PRICE, httpx.Response(200, json={"bitcoin": {"usd": 1}}),
                    httpx.Response(200, json={"bitcoin": {"usd": 2}}))

    assert client.get("/api/coingecko/price", params={"ids": "bitcoin"}).json() == {"bitcoin": {"usd": 1}}
    clock.advance(30)
    res = client.get("/api/coingecko/price", params={"ids": "bitcoin"})
    assert res.json() == {"bitcoin": {"usd": 2}}
    assert "x-cache" not in res.headers
    assert len(upstream.calls) == 2


def test_rate_limited_without_cache_surfaces_upstream_error(client, upstream, sleeps):
    upstream.script(MARKETS, httpx.Response(429, text="Too Many Requests"))

    res = client.get("/api/coingecko/markets", params={"ids": "bitcoin"})
    assert res.status_code == 429
    assert res.json() == {"error": "CoinGecko error", "details": "Too Many Requests"}
    assert len(upstream.calls) == 3
    assert sleeps == [0.5, 1.0]


def test_server_error_falls_back_to_stale_price(client, upstream, clock):
    upstream.script(PRICE, httpx.Response(200, json={"bitcoin": {"usd": 1}}), httpx.Response(503, text="down"))

    client.get("/api/coingecko/price", params={"ids": "bitcoin"})
    clock.advance(31)
    res = client.get("/api/coingecko/price", params={"ids": "bitcoin"})

    assert res.status_code == 200
    assert res.json() == {"bitcoin": {"usd": 1}}
    assert res.headers["x-cache"] == "stale"


def test_invalid_json_from_upstream_is_internal_error(client, upstream):
    upstream.script(PRICE, httpx.Response(200, content=b"<html>maintenance</html>"))

    res = client.get("/api/coingecko/price", params={"ids": "bitcoin"})
    assert res.status_code == 500
    body = res.json()
    assert body["error"] == "Failed to fetch CoinGecko price"
    assert body["details"]


def test_network_failure_after_retries_is_internal_error(client, upstream):
    upstream.script(MARKETS, httpx.ConnectError("connection refused"))

    res = client.get("/api/coingecko/markets", params={"ids": "bitcoin"})
    assert res.status_code == 500
    assert res.json() == {"error": "Failed to fetch CoinGecko markets", "details": "connection refused"}
    assert len(upstream.calls) == 3

    # the process stays available for the next request
    upstream.script(MARKETS, httpx.Response(200, json=BTC_MARKET))
    assert client.get("/api/coingecko/markets", params={"ids": "bitcoin"}).status_code == 200


def test_invalid_per_page_is_rejected(client, upstream):
    res = client.get("/api/coingecko/markets", params={"ids": "bitcoin", "per_page": 0})
    assert res.status_code == 422
    assert upstream.calls == []


def test_malformed_paging_uses_error_body(client, upstream):
    res = client.get("/api/coingecko/markets", params={"ids": "bitcoin", "page": "abc"})
    assert res.status_code == 422
    body = res.json()
    assert body["error"] == "Invalid request parameters"
    assert "page" in body["details"]
    assert upstream.calls == []
