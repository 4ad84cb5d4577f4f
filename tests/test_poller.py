import threading
import time

import pytest
from google.api_core import exceptions as gexc

from gke_deploy.errors import (
    CancelledError,
    NotFoundError,
    OperationTimeoutError,
    PermanentRemoteError,
    TransientRemoteError,
)
from gke_deploy.models import OperationStatus
from gke_deploy.poller import CallableOperation, GoogleOperation, OperationPoller


class _ScriptedOperation:
    def __init__(self, pending_polls: int, result=None, error=None) -> None:  # noqa: ANN001
        self.pending_polls = pending_polls
        self.result = result
        self.error = error
        self.polls = 0

    def poll(self) -> OperationStatus:
        self.polls += 1
        if self.polls <= self.pending_polls:
            return OperationStatus.pending()
        if self.error is not None:
            return OperationStatus.failed(self.error)
        return OperationStatus.succeeded(self.result)


class _FakeApiCoreOperation:
    """google.api_core.operation.Operation 과 같은 done/exception/result 인터페이스."""

    def __init__(self, done_after: int, result=None, exc=None) -> None:  # noqa: ANN001
        self.done_after = done_after
        self._result = result
        self._exc = exc
        self.calls = 0

    def done(self) -> bool:
        self.calls += 1
        return self.calls > self.done_after

    def exception(self):  # noqa: ANN201
        return self._exc

    def result(self):  # noqa: ANN201
        return self._result


def _poller(**kwargs) -> OperationPoller:  # noqa: ANN003
    kwargs.setdefault("interval", 0.01)
    kwargs.setdefault("max_interval", 0.02)
    return OperationPoller(**kwargs)


def test_returns_result_after_pending_polls() -> None:
    op = _ScriptedOperation(pending_polls=3, result="image@sha256:abc")

    assert _poller().wait(op, timeout=2.0) == "image@sha256:abc"
    assert op.polls == 4


def test_never_completing_operation_times_out() -> None:
    op = _ScriptedOperation(pending_polls=10**9)

    started = time.monotonic()
    with pytest.raises(OperationTimeoutError):
        _poller().wait(op, timeout=0.2, description="빌드")
    elapsed = time.monotonic() - started

    assert 0.15 <= elapsed < 1.5


def test_remote_failure_is_mapped_to_taxonomy() -> None:
    op = _ScriptedOperation(pending_polls=1, error=gexc.PermissionDenied("no access"))

    with pytest.raises(PermanentRemoteError) as excinfo:
        _poller().wait(op, timeout=1.0)

    assert isinstance(excinfo.value.__cause__, gexc.PermissionDenied)


def test_deploy_error_from_operation_passes_through() -> None:
    original = TransientRemoteError("backend unavailable")
    op = _ScriptedOperation(pending_polls=0, error=original)

    with pytest.raises(TransientRemoteError) as excinfo:
        _poller().wait(op, timeout=1.0)

    assert excinfo.value is original


def test_cancel_interrupts_long_interval_promptly() -> None:
    cancel = threading.Event()
    poller = OperationPoller(interval=10.0, max_interval=10.0, cancel_event=cancel)
    op = _ScriptedOperation(pending_polls=10**9)
    timer = threading.Timer(0.1, cancel.set)

    started = time.monotonic()
    timer.start()
    try:
        with pytest.raises(CancelledError):
            poller.wait(op, timeout=60.0)
    finally:
        timer.cancel()

    assert time.monotonic() - started < 2.0


def test_interval_backs_off_up_to_max() -> None:
    waits = []

    class _RecordingEvent(threading.Event):
        def wait(self, timeout=None):  # noqa: ANN001, ANN201
            waits.append(timeout)
            return False

    poller = OperationPoller(interval=1.0, max_interval=3.0, backoff=2.0, cancel_event=_RecordingEvent())
    op = _ScriptedOperation(pending_polls=4, result="ok")

    assert poller.wait(op, timeout=100.0) == "ok"
    assert waits == [1.0, 2.0, 3.0, 3.0]


def test_google_operation_adapter() -> None:
    op = GoogleOperation(_FakeApiCoreOperation(done_after=2, result={"name": "repo"}))

    assert _poller().wait(op, timeout=1.0) == {"name": "repo"}


def test_google_operation_adapter_maps_exception() -> None:
    op = GoogleOperation(_FakeApiCoreOperation(done_after=0, exc=gexc.NotFound("gone")), description="enable")

    with pytest.raises(NotFoundError):
        _poller().wait(op, timeout=1.0)


def test_callable_operation_waits_for_value() -> None:
    values = iter([None, None, "203.0.113.10"])

    assert _poller().wait(CallableOperation(lambda: next(values)), timeout=1.0) == "203.0.113.10"
