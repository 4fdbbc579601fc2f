"""Tests for the scheduling types forwarded through the tree."""

from datetime import UTC, datetime, timedelta

import pytest

from routefilter.models.scheduling import (
    CycleState,
    LLMRequest,
    Pod,
    PodMetrics,
    SchedulingContext,
)


class TestCycleState:
    def test_write_then_read(self) -> None:
        state = CycleState()
        state.write("prefix-hits", {"p1": 3})

        assert state.read("prefix-hits") == {"p1": 3}
        assert "prefix-hits" in state

    def test_read_missing_raises(self) -> None:
        with pytest.raises(KeyError):
            CycleState().read("missing")


class TestSchedulingContext:
    def test_cancel(self) -> None:
        ctx = SchedulingContext(request_id="r")
        assert ctx.is_cancelled() is False

        ctx.cancel()

        assert ctx.is_cancelled() is True

    def test_no_deadline_never_exceeded(self) -> None:
        assert SchedulingContext().deadline_exceeded() is False

    def test_deadline(self) -> None:
        now = datetime(2025, 1, 1, tzinfo=UTC)
        ctx = SchedulingContext(deadline=now + timedelta(seconds=1))

        assert ctx.deadline_exceeded(now) is False
        assert ctx.deadline_exceeded(now + timedelta(seconds=2)) is True


class TestValueTypes:
    def test_pods_are_hashable_and_comparable(self) -> None:
        a = Pod(name="p1", metrics=PodMetrics(active_models=frozenset({"m"})))
        b = Pod(name="p1", metrics=PodMetrics(active_models=frozenset({"m"})))

        assert a == b
        assert len({a, b}) == 1

    def test_request_hash_ignores_headers(self) -> None:
        a = LLMRequest(request_id="r", headers={"x": "1"})
        b = LLMRequest(request_id="r", headers={"x": "2"})

        assert hash(a) == hash(b)
        assert a != b
