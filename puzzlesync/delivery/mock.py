"""Mock report channel for testing.

Deterministic, zero-cost ReportChannel implementation that returns
configurable canned responses. Used by the lifecycle manager tests (via
conftest fixtures) and as the reference implementation of the ReportChannel
contract.
"""

import asyncio
from collections.abc import Sequence

from puzzlesync.hooks.interfaces import ReportChannel
from puzzlesync.schemas import DeliveryResponse, GameResult, Inventory

_DEFAULT_RESPONSE = DeliveryResponse(is_completed=True, inventory=Inventory())


class MockReportChannel(ReportChannel):
    """Deterministic report channel for testing.

    Every batch it receives is recorded in ``batches``. Responses are
    consumed in order; once exhausted, ``default`` is returned.

    Args:
        responses: Canned responses, one per send() call.
        default: Response used after ``responses`` runs out. Defaults to a
            completed delivery with an empty inventory.
        gate: If set, send() waits on this event before answering. Lets a
            test interleave lifecycle operations with an in-flight delivery.
    """

    def __init__(
        self,
        responses: list[DeliveryResponse] | None = None,
        default: DeliveryResponse | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.responses = list(responses or [])
        self.default = default or _DEFAULT_RESPONSE
        self.gate = gate
        self.batches: list[list[GameResult]] = []

    async def send(self, results: Sequence[GameResult]) -> DeliveryResponse:
        self.batches.append(list(results))
        if self.gate is not None:
            await self.gate.wait()
        if self.responses:
            return self.responses.pop(0)
        return self.default
