"""QuestApi: HTTP endpoint answering quest-completion checks.

Endpoint:
    POST /api/get-user?value={minimum_usd}&startTime={unix_seconds}
    Header: x-api-key
    Body:   {"accounts": {"wallet": "0x..."}}

Responses are plain text:
    200 "Quest completed"      a DCA order meets the minimum value
    400 "Validation failed"    no order does
    400 "Wrong params"         missing/invalid query parameters or body
    401 "Unauthorized"         API key mismatch
    502 "Order lookup failed"  the subgraph could not be queried
"""

from __future__ import annotations

import hmac
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Header, Query, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ValidationError

from .DcaOrder import RequestFormatError, ValidationRequest
from .providers import BaseProvider
from .SubgraphClient import SubgraphError

if TYPE_CHECKING:
    from .OrderValidator import OrderValidator
    from .SubgraphClient import SubgraphClient

logger = logging.getLogger(__name__)

QUEST_COMPLETED = "Quest completed"
VALIDATION_FAILED = "Validation failed"
WRONG_PARAMS = "Wrong params"
UNAUTHORIZED = "Unauthorized"
ORDER_LOOKUP_FAILED = "Order lookup failed"


class AuthenticationError(Exception):
    """Raised when the request's API key does not match the configured secret."""

    pass


class QuestAccounts(BaseModel):
    wallet: str


class QuestPayload(BaseModel):
    accounts: QuestAccounts


def check_api_key(expected: str, provided: str | None) -> None:
    """Compare the request API key to the configured secret.

    :raises AuthenticationError: If the key is missing or different.
    """
    if not provided or not hmac.compare_digest(expected.encode(), provided.encode()):
        raise AuthenticationError("Invalid API Key")


async def read_wallet(request: Request) -> str | None:
    """Extract accounts.wallet from the JSON body.

    :raises RequestFormatError: If the body is not the expected JSON document.
    """
    try:
        payload = QuestPayload.model_validate(await request.json())
    except (ValueError, ValidationError) as e:
        raise RequestFormatError(f"Invalid request body: {e}") from e
    return payload.accounts.wallet


def create_app(
    validator: OrderValidator,
    subgraph: SubgraphClient,
    api_key: str,
) -> FastAPI:
    """Build the FastAPI application.

    :param validator: Order validator (allowlist + price router).
    :param subgraph: Client used to load the wallet's orders.
    :param api_key: Secret expected in the x-api-key header.
    :returns: Configured FastAPI app.
    """
    if not api_key:
        raise ValueError("An API key is required to serve quest checks")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await BaseProvider.close_shared_client()

    app = FastAPI(title="Quest Verifier", lifespan=lifespan)
    app.state.validator = validator
    app.state.subgraph = subgraph

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(request: Request, exc: AuthenticationError):
        logger.warning(f"Rejected request from {request.client.host if request.client else '?'}: {exc}")
        return PlainTextResponse(UNAUTHORIZED, status_code=401)

    @app.post("/api/get-user", response_class=PlainTextResponse)
    async def get_user(
        request: Request,
        value: str | None = Query(default=None),
        start_time: str | None = Query(default=None, alias="startTime"),
        x_api_key: str | None = Header(default=None),
    ) -> PlainTextResponse:
        if not value or not start_time:
            return PlainTextResponse(WRONG_PARAMS, status_code=400)

        try:
            wallet = await read_wallet(request)
            validation_request = ValidationRequest.from_params(value, start_time, wallet)
        except RequestFormatError as e:
            logger.info(f"Bad request: {e}")
            return PlainTextResponse(WRONG_PARAMS, status_code=400)

        check_api_key(api_key, x_api_key)

        try:
            orders = await request.app.state.subgraph.fetch_orders(
                validation_request.wallet_address,
                validation_request.start_time_inclusive,
            )
        except SubgraphError as e:
            logger.error(f"Order lookup failed for {validation_request.wallet_address}: {e}")
            return PlainTextResponse(ORDER_LOOKUP_FAILED, status_code=502)

        result = await request.app.state.validator.validate(
            orders,
            validation_request.minimum_usd_value,
            validation_request.wallet_address,
        )
        if not result.passed:
            return PlainTextResponse(VALIDATION_FAILED, status_code=400)
        return PlainTextResponse(QUEST_COMPLETED)

    return app
