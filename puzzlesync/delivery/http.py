"""HTTP report channel using httpx.

Implements the ReportChannel contract against the remote report service:

    POST {base_url}/reports
    Authorization: Bearer {token}
    {"results": [<GameResult>, ...]}

    2xx  -> {"inventory": {...}, "newAchievements": ["id", ...]}
    4xx/5xx -> {"errors": [{"code": 123, "message": "..."}]} (body optional)

Client-side failures are mapped to the sentinel codes in puzzlesync.codes:
transport errors (DNS, refused connection, timeouts) become NO_INTERNET,
HTTP 401 becomes INVALID_TOKEN, and a channel without a base URL answers
NOT_INITIALIZED without touching the network. The channel never raises.

No retry loop here: the lifecycle core keeps retryable batches queued and
resends them with the next submission.

Tier 2 service — imports from puzzlesync.hooks.interfaces (Tier 1),
puzzlesync.codes and puzzlesync.schemas (Tier 1) + httpx.
"""

import logging
from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import ValidationError

from puzzlesync import codes
from puzzlesync.hooks.interfaces import ReportChannel
from puzzlesync.schemas import DeliveryError, DeliveryResponse, GameResult, Inventory

logger = logging.getLogger(__name__)

_REPORTS_PATH = "/reports"


def _failure(code: int, message: str) -> DeliveryResponse:
    return DeliveryResponse(is_completed=False, errors=[DeliveryError(code=code, message=message)])


def _parse_errors(response: httpx.Response) -> list[DeliveryError]:
    """Reads the service's error list, falling back to the HTTP status."""
    try:
        body = response.json()
    except ValueError:
        body = None

    errors: list[DeliveryError] = []
    if isinstance(body, dict) and isinstance(body.get("errors"), list):
        for item in body["errors"]:
            try:
                errors.append(DeliveryError.model_validate(item))
            except ValidationError:
                logger.debug("Skipping malformed error entry: %r", item)

    # A server fault stays retryable whatever codes the body carries.
    if not errors or response.status_code >= 500:
        errors.insert(0, DeliveryError(code=response.status_code, message=response.reason_phrase))
    return errors


def _parse_success(body: Any) -> DeliveryResponse:
    inventory: Inventory | None = None
    achievements: list[str] = []
    if isinstance(body, dict):
        if body.get("inventory") is not None:
            inventory = Inventory.model_validate(body["inventory"])
        achievements = [str(item) for item in body.get("newAchievements") or []]
    return DeliveryResponse(is_completed=True, inventory=inventory, new_achievements=achievements)


class HttpReportChannel(ReportChannel):
    """Report service client over HTTP.

    Args:
        base_url: Report service root, e.g. "https://reports.example.com/v1".
            Empty leaves the channel uninitialized.
        token: Bearer token sent with every request.
        timeout: Per-request timeout in seconds.
        client: Optional pre-built httpx.AsyncClient (tests inject one with
            a MockTransport). The channel closes only clients it created.
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def is_initialized(self) -> bool:
        return bool(self._base_url)

    async def send(self, results: Sequence[GameResult]) -> DeliveryResponse:
        if not self.is_initialized:
            return _failure(codes.NOT_INITIALIZED, "Report service URL is not configured.")

        payload = {"results": [result.to_wire() for result in results]}
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}

        try:
            response = await self._client.post(
                f"{self._base_url}{_REPORTS_PATH}",
                json=payload,
                headers=headers,
            )
        except httpx.TransportError as exc:
            logger.warning("Report delivery transport error: %s", exc)
            return _failure(codes.NO_INTERNET, str(exc) or type(exc).__name__)

        if response.status_code == 401:
            return _failure(codes.INVALID_TOKEN, "Report service rejected the token.")

        if response.is_success:
            if not response.content:
                return DeliveryResponse(is_completed=True)
            try:
                return _parse_success(response.json())
            except (ValueError, ValidationError) as exc:
                logger.warning("Malformed report service response: %s", exc)
                # An unreadable acknowledgment is a server fault: keep the batch.
                return _failure(502, str(exc))

        errors = _parse_errors(response)
        logger.warning(
            "Report service answered %d for %d result(s): %s",
            response.status_code,
            len(results),
            ", ".join(str(error.code) for error in errors),
        )
        return DeliveryResponse(is_completed=False, errors=errors)

    async def aclose(self) -> None:
        """Closes the underlying HTTP client if this channel created it."""
        if self._owns_client:
            await self._client.aclose()
