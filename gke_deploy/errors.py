"""
errors
------

배포 파이프라인 전체에서 사용하는 예외 계층.

모든 단계는 가능한 한 구체적인 예외를 올리고, 오케스트레이터는 예외 종류를
바꾸지 않고 실패한 단계 이름(stage)만 붙여서 그대로 전달한다.
"""

from __future__ import annotations

from textwrap import shorten
from typing import Optional

from google.api_core import exceptions as gexc


class DeployError(Exception):
    """배포 파이프라인 예외의 공통 부모."""

    def __init__(self, message: str, *, stage: Optional[str] = None, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.detail = detail

    def __str__(self) -> str:
        text = self.message
        if self.stage:
            text = f"[{self.stage}] {text}"
        if self.detail:
            text = f"{text}\n{shorten(self.detail, width=2000)}"
        return text


class TransientRemoteError(DeployError):
    """네트워크/5xx 등 상위 레이어에서 재시도해볼 만한 원격 오류."""


class PermanentRemoteError(DeployError):
    """4xx/권한 오류 등 재시도해도 소용없는 원격 오류."""


class NotFoundError(DeployError):
    """리소스가 존재하지 않음."""


class PreconditionError(DeployError):
    """파이프라인 전제 조건 위반 (예: 존재하지 않는 클러스터로 배포)."""


class OperationTimeoutError(DeployError):
    """폴링 루프가 데드라인을 넘김."""


class ValidationError(DeployError):
    """잘못된 요청. 원격 호출 전에 검출된다."""


class CancelledError(DeployError):
    """호출자가 파이프라인을 중단함."""


def from_google_error(exc: Exception, message: str) -> DeployError:
    """
    google.api_core 예외를 파이프라인 예외로 변환한다.

    이미 DeployError 라면 그대로 돌려준다.
    """
    if isinstance(exc, DeployError):
        return exc

    detail = str(exc)
    if isinstance(exc, gexc.NotFound):
        return NotFoundError(message, detail=detail)
    if isinstance(exc, (gexc.ServerError, gexc.TooManyRequests, gexc.RetryError)):
        return TransientRemoteError(message, detail=detail)
    if isinstance(exc, gexc.ClientError):
        return PermanentRemoteError(message, detail=detail)
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return TransientRemoteError(message, detail=detail)
    return PermanentRemoteError(message, detail=detail)
