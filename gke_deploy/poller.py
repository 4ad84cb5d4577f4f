"""
poller
------

장시간 실행되는 원격 작업(LRO)을 완료/실패/타임아웃까지 기다리는 공통 폴링 루프.

poll() 만 있으면 어떤 작업이든 기다릴 수 있다. (API enable, Cloud Build,
Artifact Registry 리포 생성, LoadBalancer 외부 주소 할당 등)
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Optional

from .errors import CancelledError, DeployError, OperationTimeoutError, from_google_error
from .logging_utils import get_logger
from .models import Operation, OperationStatus


logger = get_logger(__name__)

DEFAULT_INTERVAL = 2.0
DEFAULT_MAX_INTERVAL = 15.0
DEFAULT_BACKOFF = 1.5


class GoogleOperation:
    """google.api_core.operation.Operation 을 poll() 인터페이스로 감싼다."""

    def __init__(self, operation, *, description: str = "operation") -> None:  # noqa: ANN001
        self._operation = operation
        self._description = description

    def poll(self) -> OperationStatus:
        try:
            if not self._operation.done():
                return OperationStatus.pending()
        except Exception as e:  # noqa: BLE001
            return OperationStatus.failed(from_google_error(e, f"{self._description} 상태 조회 실패"))

        exc = self._operation.exception()
        if exc is not None:
            return OperationStatus.failed(from_google_error(exc, f"{self._description} 실패"))
        return OperationStatus.succeeded(self._operation.result())


class CallableOperation:
    """
    '아직 없음(None)' 또는 값을 돌려주는 함수를 작업처럼 다룬다.

    probe 가 예외를 던지면 작업 실패로 본다.
    """

    def __init__(self, probe: Callable[[], Any]) -> None:
        self._probe = probe

    def poll(self) -> OperationStatus:
        try:
            value = self._probe()
        except Exception as e:  # noqa: BLE001
            return OperationStatus.failed(e)
        if value is None:
            return OperationStatus.pending()
        return OperationStatus.succeeded(value)


class CompletedOperation:
    """이미 끝난 작업. 동기 API 결과를 같은 흐름으로 넘길 때 쓴다."""

    def __init__(self, result: Any = None) -> None:
        self._result = result

    def poll(self) -> OperationStatus:
        return OperationStatus.succeeded(self._result)


class OperationPoller:
    def __init__(
        self,
        *,
        interval: float = DEFAULT_INTERVAL,
        max_interval: float = DEFAULT_MAX_INTERVAL,
        backoff: float = DEFAULT_BACKOFF,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.interval = interval
        self.max_interval = max(max_interval, interval)
        self.backoff = max(backoff, 1.0)
        self.cancel_event = cancel_event or threading.Event()

    def wait(
        self,
        operation: Operation,
        timeout: float,
        *,
        description: str = "operation",
        interval: Optional[float] = None,
    ) -> Any:
        """
        작업이 끝날 때까지 기다린 뒤 결과를 돌려준다.

        - 실패: 작업이 보고한 오류를 DeployError 계열로 올린다
        - timeout 초과: OperationTimeoutError
        - cancel_event 설정: 다음 대기 경계에서 바로 CancelledError
        """
        started = time.monotonic()
        deadline = started + float(timeout)
        wait_for = float(interval if interval is not None else self.interval)
        attempts = 0

        while True:
            if self.cancel_event.is_set():
                raise CancelledError(f"{description} 대기 중 취소되었습니다")

            attempts += 1
            status = operation.poll()
            if status.done:
                err = status.error
                if isinstance(err, DeployError):
                    raise err
                if err is not None:
                    raise from_google_error(err, f"{description} 실패") from err
                logger.debug("%s 완료 (시도 %d회, %.1fs)", description, attempts, time.monotonic() - started)
                return status.result

            now = time.monotonic()
            if now >= deadline:
                raise OperationTimeoutError(
                    f"{description} 이(가) {timeout}초 안에 끝나지 않았습니다 (시도 {attempts}회)"
                )

            sleep_for = min(wait_for, deadline - now)
            logger.debug("%s 진행 중, %.1fs 후 다시 확인", description, sleep_for)
            if self.cancel_event.wait(sleep_for):
                raise CancelledError(f"{description} 대기 중 취소되었습니다")
            wait_for = min(wait_for * self.backoff, self.max_interval)
