"""Unit tests for SubgraphClient."""

import asyncio
import json

import httpx
import pytest

from quest_verifier.src.SubgraphClient import DEFAULT_SUBGRAPH_URL, SubgraphClient, SubgraphError

WALLET = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


def client_for(body, status_code: int = 200, seen: list | None = None) -> SubgraphClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, content=json.dumps(body).encode())

    return SubgraphClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def fetch_orders(client: SubgraphClient, start_time: int = 1700000000):
    return asyncio.run(client.fetch_orders(WALLET, start_time))


class TestSubgraphClientQuery:
    """Test the GraphQL request."""

    def test_query_variables(self) -> None:
        seen: list[httpx.Request] = []
        client = client_for({"data": {"dcaorders": []}}, seen=seen)

        assert fetch_orders(client, 1234) == []

        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == DEFAULT_SUBGRAPH_URL
        payload = json.loads(request.content)
        assert payload["variables"] == {"id": WALLET.lower(), "startTime_gte": 1234}
        assert "dcaorders(where: { owner: $id, startTime_gte: $startTime_gte })" in payload["query"]

    def test_parses_orders(self) -> None:
        body = {
            "data": {
                "dcaorders": [
                    {
                        "id": "0x1",
                        "amount": "1500000000000000000",
                        "sellToken": {
                            "address": "0x82af49447d8a07e3bd95bd0d56f35241523fbab1",
                            "symbol": "WETH",
                            "decimals": 18,
                        },
                    },
                    {
                        "id": "0x2",
                        "amount": "5000000",
                        "sellToken": {"address": "0xaf88d065e77c8cc2239327c5edb3a432268e5831", "decimals": 6},
                    },
                ]
            }
        }
        orders = fetch_orders(client_for(body))

        assert [o.id for o in orders] == ["0x1", "0x2"]
        assert orders[0].sell_token_symbol == "WETH"
        assert orders[1].sell_token_decimals == 6

    def test_skips_malformed_records(self) -> None:
        body = {"data": {"dcaorders": [{"id": "bad"}, "junk", {"id": "ok", "amount": "1", "sellToken": {"address": "0xabc"}}]}}
        orders = fetch_orders(client_for(body))
        assert [o.id for o in orders] == ["ok"]


class TestSubgraphClientErrors:
    """Test error reporting."""

    def test_graphql_errors(self) -> None:
        client = client_for({"errors": [{"message": "indexing error"}]})
        with pytest.raises(SubgraphError, match="indexing error"):
            fetch_orders(client)

    def test_http_error(self) -> None:
        with pytest.raises(SubgraphError, match="HTTP 500"):
            fetch_orders(client_for({"error": "x"}, status_code=500))

    def test_missing_data(self) -> None:
        with pytest.raises(SubgraphError, match="No dcaorders"):
            fetch_orders(client_for({"data": None}))

    @pytest.mark.parametrize("payload", [[{"dcaorders": []}], "dcaorders", 1])
    def test_non_object_data(self, payload) -> None:
        """A data field that is not an object is reported, not raised as AttributeError."""
        with pytest.raises(SubgraphError, match="No dcaorders"):
            fetch_orders(client_for({"data": payload}))

    def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        client = SubgraphClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        with pytest.raises(SubgraphError, match="request failed"):
            fetch_orders(client)
