import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from utils.arweave import ArweaveClient, LedgerError


def make_gateway_app(state):
    async def info(request):
        if state.get("info_down"):
            return web.Response(status=503, text="Service Unavailable")
        return web.json_response({"network": "arweave.N.1", "height": 1500, "blocks": 1501})

    async def block(request):
        height = int(request.match_info["height"])
        if height == 404:
            return web.Response(status=404, text="Block not found")
        if height == 5:
            return web.json_response({"height": 5})
        return web.json_response({"height": height, "timestamp": "1705276900", "indep_hash": "h"})

    async def graphql(request):
        body = await request.json()
        state["graphql"].append(body)
        variables = body["variables"]
        if variables.get("after") == "explode":
            return web.json_response({"errors": [{"message": "query timeout"}]})
        if variables.get("after") == "gateway-down":
            return web.Response(status=502, text="Bad Gateway")
        if variables["min"] == 0:
            return web.json_response({"data": {"transactions": None}})
        return web.json_response({"data": {"transactions": {
            "pageInfo": {"hasNextPage": False, "endCursor": "c1"},
            "edges": [{"node": {"id": "tx1", "data": {"size": "3"}, "tags": []}}],
        }}})

    app = web.Application()
    app.router.add_get("/info", info)
    app.router.add_get("/block/height/{height}", block)
    app.router.add_post("/graphql", graphql)
    return app


@pytest_asyncio.fixture
async def gateway():
    state = {"graphql": []}
    server = TestServer(make_gateway_app(state))
    await server.start_server()
    client = ArweaveClient(str(server.make_url("/")))
    yield client, state
    await client.close()
    await server.close()


class TestArweaveClient:
    @pytest.mark.asyncio
    async def test_current_height(self, gateway):
        client, _ = gateway
        assert await client.get_current_height() == 1500

    @pytest.mark.asyncio
    async def test_info_failure_raises(self, gateway):
        client, state = gateway
        state["info_down"] = True
        with pytest.raises(LedgerError, match="503"):
            await client.get_current_height()

    @pytest.mark.asyncio
    async def test_block_timestamp_is_coerced_to_int(self, gateway):
        client, _ = gateway
        block = await client.get_block_by_height(7)
        assert block["timestamp"] == 1705276900
        assert block["indep_hash"] == "h"

    @pytest.mark.asyncio
    async def test_missing_block_raises(self, gateway):
        client, _ = gateway
        with pytest.raises(LedgerError, match="404"):
            await client.get_block_by_height(404)

    @pytest.mark.asyncio
    async def test_block_without_timestamp_raises(self, gateway):
        client, _ = gateway
        with pytest.raises(LedgerError, match="timestamp"):
            await client.get_block_by_height(5)

    @pytest.mark.asyncio
    async def test_paginated_query_sends_cursor(self, gateway):
        client, state = gateway
        page = await client.query_transactions(12, first=100, after="c0")
        assert page["edges"][0]["node"]["id"] == "tx1"
        sent = state["graphql"][-1]
        assert sent["variables"] == {"min": 12, "max": 12, "first": 100, "after": "c0"}
        assert "pageInfo" in sent["query"]

    @pytest.mark.asyncio
    async def test_reduced_query_has_no_cursor(self, gateway):
        client, state = gateway
        await client.query_transactions(12, first=100, paginated=False)
        sent = state["graphql"][-1]
        assert "after" not in sent["variables"]
        assert "pageInfo" not in sent["query"]

    @pytest.mark.asyncio
    async def test_graphql_errors_raise(self, gateway):
        client, _ = gateway
        with pytest.raises(LedgerError, match="query timeout"):
            await client.query_transactions(12, after="explode")

    @pytest.mark.asyncio
    async def test_http_error_raises(self, gateway):
        client, _ = gateway
        with pytest.raises(LedgerError, match="502"):
            await client.query_transactions(12, after="gateway-down")

    @pytest.mark.asyncio
    async def test_null_transactions_returns_none(self, gateway):
        client, _ = gateway
        assert await client.query_transactions(0) is None

    @pytest.mark.asyncio
    async def test_unreachable_gateway_raises(self):
        client = ArweaveClient("http://127.0.0.1:1")
        try:
            with pytest.raises(LedgerError):
                await client.get_current_height()
        finally:
            await client.close()
