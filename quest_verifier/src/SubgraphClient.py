"""SubgraphClient: Reads a wallet's DCA orders from the Stackly subgraph.

Endpoint: The Graph Studio, GraphQL over HTTP POST.
"""

from __future__ import annotations

import logging

import httpx

from .DcaOrder import DcaOrder
from .providers import BaseProvider

logger = logging.getLogger(__name__)

DEFAULT_SUBGRAPH_URL = (
    "https://api.studio.thegraph.com/query/63508/stackly-arbitrum-one/version/latest"
)


class SubgraphError(Exception):
    """Raised when the subgraph cannot be queried or returns an unusable answer."""

    pass


class SubgraphClient:
    """Read-only client for the DCA order subgraph.

    :ivar url: Subgraph GraphQL endpoint.
    :ivar timeout: Request timeout in seconds.
    """

    ORDERS_QUERY = """
    query GetOrders($id: ID!, $startTime_gte: Int) {
        dcaorders(where: { owner: $id, startTime_gte: $startTime_gte }) {
            id
            sellToken {
                address
                id
                symbol
                name
                decimals
            }
            amount
        }
    }
    """

    def __init__(
        self,
        url: str = DEFAULT_SUBGRAPH_URL,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        :param url: Subgraph GraphQL endpoint.
        :param timeout: Request timeout in seconds.
        :param client: Optional HTTP client; the providers' shared client is used if omitted.
        """
        self.url = url
        self.timeout = timeout
        self._client = client

    async def fetch_orders(self, owner: str, start_time_gte: int) -> list[DcaOrder]:
        """Fetch the DCA orders of a wallet created at or after a time.

        :param owner: Wallet address (lower-cased before querying).
        :param start_time_gte: Inclusive unix start time.
        :returns: Orders in subgraph order; malformed records are skipped.
        :raises SubgraphError: On transport failure, non-2xx response or GraphQL errors.
        """
        client = self._client if self._client is not None else BaseProvider.get_shared_client()
        variables = {"id": owner.lower(), "startTime_gte": start_time_gte}

        try:
            response = await client.post(
                self.url,
                json={"query": self.ORDERS_QUERY, "variables": variables},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise SubgraphError(f"Subgraph request timeout: {e}") from e
        except httpx.RequestError as e:
            raise SubgraphError(f"Subgraph request failed: {e}") from e

        if not response.is_success:
            raise SubgraphError(f"Subgraph HTTP {response.status_code}: {response.text[:200]}")

        try:
            data = response.json()
        except ValueError as e:
            raise SubgraphError(f"Subgraph returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise SubgraphError(f"Unexpected subgraph response: {str(data)[:200]}")
        if data.get("errors"):
            raise SubgraphError(f"Subgraph query failed: {data['errors']}")

        payload = data.get("data")
        records = payload.get("dcaorders") if isinstance(payload, dict) else None
        if not isinstance(records, list):
            raise SubgraphError(f"No dcaorders in subgraph response: {str(data)[:200]}")

        orders = []
        for record in records:
            try:
                orders.append(DcaOrder.from_subgraph(record))
            except (ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed subgraph order: {e}")

        logger.debug(f"Subgraph returned {len(orders)} orders for {variables['id']}")
        return orders
