import threading

import pytest

from specgate.contract.errors import ContractViolation, OperationCancelled, TransientGenerationError
from specgate.framework.retry import call_with_retries


class _Flaky:
    def __init__(self, failures, result="ok"):
        self.failures = list(failures)
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.result


def test_transient_failures_are_retried_with_exponential_backoff():
    delays = []
    op = _Flaky([TimeoutError("slow"), ConnectionError("reset")])

    result = call_with_retries(op, max_attempts=3, initial_delay=0.5, backoff_factor=2.0, sleep=delays.append)

    assert result == "ok"
    assert op.calls == 3
    assert delays == [0.5, 1.0]


def test_exhaustion_escalates_with_code():
    delays = []
    op = _Flaky([TransientGenerationError("busy")] * 5)

    with pytest.raises(TransientGenerationError, match=r"after 2 attempt") as excinfo:
        call_with_retries(op, max_attempts=2, initial_delay=0.1, sleep=delays.append)

    assert excinfo.value.code == "GENERATION_RETRIES_EXHAUSTED"
    assert isinstance(excinfo.value.__cause__, TransientGenerationError)
    assert op.calls == 2
    assert delays == [0.1]


def test_non_transient_errors_are_never_retried():
    op = _Flaky([ContractViolation("bad shape"), ValueError("x")])

    with pytest.raises(ContractViolation):
        call_with_retries(op, max_attempts=5, sleep=lambda _s: None)
    assert op.calls == 1


def test_cancellation_stops_before_the_next_call():
    cancel = threading.Event()
    op = _Flaky([TimeoutError("slow")])

    with pytest.raises(OperationCancelled):
        call_with_retries(op, max_attempts=3, sleep=lambda _s: cancel.set(), cancel=cancel)
    assert op.calls == 1


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError, match=r"max_attempts must be >= 1"):
        call_with_retries(lambda: None, max_attempts=0)
