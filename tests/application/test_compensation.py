"""Unit tests for the saga compensation stack."""

from fulfillment.application.compensation import CompensationStack


class TestCompensationStack:

    def test_unwinds_newest_first(self):
        calls = []
        stack = CompensationStack("saga-1")
        stack.push("release_stock", lambda: calls.append("release_stock"))
        stack.push("fail_payment", lambda: calls.append("fail_payment"))
        stack.push("mark_order_failed", lambda: calls.append("mark_order_failed"))

        assert stack.unwind() == []
        assert calls == ["mark_order_failed", "fail_payment", "release_stock"]
        assert len(stack) == 0

    def test_failing_step_does_not_stop_the_rest(self):
        calls = []

        def broken():
            raise RuntimeError("gateway down")

        stack = CompensationStack("saga-1")
        stack.push("release_stock", lambda: calls.append("release_stock"))
        stack.push("refund_payment", broken)

        failures = stack.unwind()

        assert calls == ["release_stock"]
        assert [(name, str(exc)) for name, exc in failures] == [("refund_payment", "gateway down")]

    def test_discard_after_commit(self):
        calls = []
        stack = CompensationStack("saga-1")
        stack.push("release_stock", lambda: calls.append("release_stock"))
        stack.discard()

        assert stack.unwind() == []
        assert calls == []
