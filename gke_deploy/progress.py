"""
progress
--------

진행 상황 이벤트(ProgressEvent)를 구독자에게 전달한다.

구독자는 best-effort 로 호출되며, 구독자에서 발생한 예외는
파이프라인으로 다시 올라오지 않는다.
"""

from __future__ import annotations

import logging
import threading
from typing import List, Optional, Protocol

from .logging_utils import get_logger, get_run_logger
from .models import ProgressEvent, Severity


logger = get_logger(__name__)

_LOG_LEVELS = {
    Severity.DEBUG: logging.DEBUG,
    Severity.INFO: logging.INFO,
    Severity.WARN: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


class ProgressSink(Protocol):
    def on_event(self, event: ProgressEvent) -> None:
        ...


class NullProgressSink:
    def on_event(self, event: ProgressEvent) -> None:
        return None


class RecordingProgressSink:
    """받은 이벤트를 순서대로 쌓아두는 구독자. 테스트/요약 출력용."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: List[ProgressEvent] = []

    def on_event(self, event: ProgressEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> List[ProgressEvent]:
        with self._lock:
            return list(self._events)

    def messages(self) -> List[str]:
        return [e.message for e in self.events]


class ProgressEmitter:
    """
    한 번의 파이프라인 실행에 묶인 이벤트 발행기.

    모든 이벤트에 correlation_id 와 현재 단계 이름을 붙이고,
    같은 내용을 로그로도 남긴다.
    """

    def __init__(self, correlation_id: str, sink: Optional[ProgressSink] = None) -> None:
        self.correlation_id = correlation_id
        self._sink = sink or NullProgressSink()
        self._log = get_run_logger("gke_deploy.pipeline", correlation_id)
        self.stage: Optional[str] = None

    def emit(self, message: str, severity: Severity = Severity.INFO) -> None:
        self._log.log(_LOG_LEVELS[severity], message)
        event = ProgressEvent(
            severity=severity,
            message=message,
            correlation_id=self.correlation_id,
            stage=self.stage,
        )
        try:
            self._sink.on_event(event)
        except Exception:  # noqa: BLE001
            logger.debug("progress 구독자에서 예외가 발생했지만 무시합니다", exc_info=True)

    def debug(self, message: str) -> None:
        self.emit(message, Severity.DEBUG)

    def info(self, message: str) -> None:
        self.emit(message, Severity.INFO)

    def warn(self, message: str) -> None:
        self.emit(message, Severity.WARN)

    def error(self, message: str) -> None:
        self.emit(message, Severity.ERROR)
