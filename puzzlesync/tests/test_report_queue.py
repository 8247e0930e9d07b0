"""Tests for puzzlesync.delivery.queue and puzzlesync.delivery.report."""

import asyncio

import pytest

from puzzlesync.delivery.queue import ReportQueue
from puzzlesync.delivery.report import ReportStatus
from puzzlesync.schemas import Inventory, ReportAcknowledgment


class TestReportQueue:
    def test_append_keeps_order(self, make_session) -> None:
        queue = ReportQueue()
        first, second = make_session().to_result(), make_session().to_result()
        queue.append(first)
        queue.append(second)
        assert queue.snapshot() == [first, second]
        assert len(queue) == 2

    def test_snapshot_is_a_copy(self, make_session) -> None:
        queue = ReportQueue()
        queue.append(make_session().to_result())
        batch = queue.snapshot()
        queue.append(make_session().to_result())
        assert len(batch) == 1

    def test_clear(self, make_session) -> None:
        queue = ReportQueue()
        queue.append(make_session().to_result())
        queue.clear()
        assert len(queue) == 0
        assert list(queue) == []


class TestReportStatus:
    def test_stages_are_single_shot(self, make_session) -> None:
        status = ReportStatus(make_session().to_result())
        first = ReportAcknowledgment(achievements=["a"])
        status.mark_sent(first)
        status.mark_sent(ReportAcknowledgment(achievements=["b"]))
        status.mark_delivered(first)
        status.mark_delivered(ReportAcknowledgment(achievements=["c"]))
        assert status.sent is first
        assert status.delivered is first

    def test_callback_runs_on_delivery(self, make_session) -> None:
        status = ReportStatus(make_session().to_result())
        seen: list[ReportStatus] = []
        status.add_done_callback(seen.append)
        assert seen == []
        status.mark_delivered(ReportAcknowledgment(inventory=Inventory()))
        assert seen == [status]

    def test_callback_after_delivery_runs_immediately(self, make_session) -> None:
        status = ReportStatus(make_session().to_result())
        status.mark_delivered(ReportAcknowledgment())
        seen: list[ReportStatus] = []
        status.add_done_callback(seen.append)
        assert seen == [status]

    @pytest.mark.asyncio
    async def test_wait_delivered(self, make_session) -> None:
        status = ReportStatus(make_session().to_result())
        ack = ReportAcknowledgment(achievements=["first_win"])

        waiter = asyncio.create_task(status.wait_delivered())
        await asyncio.sleep(0)
        assert not waiter.done()

        status.mark_delivered(ack)
        assert await waiter is ack
