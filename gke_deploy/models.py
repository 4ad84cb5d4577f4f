"""
models
------

파이프라인 한 번의 실행 안에서만 살아있는 데이터 타입들.
"""

from __future__ import annotations

import enum
import posixpath
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional, Protocol, Sequence

from .errors import DeployError, ValidationError


# <service>-service 가 63자 DNS label 을 넘지 않도록 여유를 둔다.
MAX_SERVICE_NAME_LENGTH = 55

_DNS_LABEL_RE = re.compile(r"^[a-z]([-a-z0-9]*[a-z0-9])?$")


@dataclass(frozen=True)
class SourceFile:
    """
    배포할 소스 하나.

    path 가 있으면 로컬 파일/디렉토리, 없으면 name + content 인라인 파일이다.
    """

    path: Optional[str] = None
    name: Optional[str] = None
    content: Optional[bytes] = None

    @classmethod
    def from_path(cls, path: str) -> "SourceFile":
        return cls(path=path)

    @classmethod
    def inline(cls, name: str, content: bytes | str) -> "SourceFile":
        if isinstance(content, str):
            content = content.encode("utf-8")
        return cls(name=name, content=content)

    @property
    def is_inline(self) -> bool:
        return self.path is None

    def describe(self) -> str:
        return self.path if self.path is not None else f"<inline:{self.name}>"


@dataclass(frozen=True)
class DeploymentRequest:
    project_id: str
    region: str
    cluster_id: str
    service_name: str
    files: Sequence[SourceFile]

    def validate(self) -> None:
        """원격 호출 전에 요청을 검증한다. 문제가 있으면 ValidationError."""
        problems: List[str] = []

        for attr in ("project_id", "region", "cluster_id"):
            if not (getattr(self, attr) or "").strip():
                problems.append(f"{attr} 가 비어 있습니다")

        name = self.service_name or ""
        if not _DNS_LABEL_RE.match(name) or len(name) > MAX_SERVICE_NAME_LENGTH:
            problems.append(
                f"service_name 이 DNS label 형식이 아닙니다: {name!r} "
                f"(소문자/숫자/'-', 문자로 시작, 최대 {MAX_SERVICE_NAME_LENGTH}자)"
            )

        if not self.files:
            problems.append("배포할 파일이 없습니다")

        for f in self.files or ():
            if f.is_inline:
                if not f.name or f.content is None:
                    problems.append("인라인 파일에는 name 과 content 가 모두 필요합니다")
                    continue
                normalized = posixpath.normpath(f.name.replace("\\", "/"))
                if posixpath.isabs(normalized) or normalized in (".", "..") or normalized.startswith("../"):
                    problems.append(f"인라인 파일 이름은 상대 경로여야 합니다: {f.name!r}")
            elif not f.path:
                problems.append("파일 경로가 비어 있습니다")

        if problems:
            raise ValidationError("배포 요청이 올바르지 않습니다: " + "; ".join(problems))


class ResourceKind(str, enum.Enum):
    API = "api"
    BUCKET = "bucket"
    REPOSITORY = "repository"
    CLUSTER = "cluster"


@dataclass(frozen=True)
class ResourceRef:
    kind: ResourceKind
    name: str
    url: Optional[str] = None


@dataclass(frozen=True)
class OperationStatus:
    done: bool
    error: Optional[BaseException] = None
    result: Any = None

    @classmethod
    def pending(cls) -> "OperationStatus":
        return cls(done=False)

    @classmethod
    def succeeded(cls, result: Any = None) -> "OperationStatus":
        return cls(done=True, result=result)

    @classmethod
    def failed(cls, error: BaseException) -> "OperationStatus":
        return cls(done=True, error=error)


class Operation(Protocol):
    """비동기 원격 작업 핸들. poll() 외의 상태는 노출하지 않는다."""

    def poll(self) -> OperationStatus:
        ...


class Severity(str, enum.Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ProgressEvent:
    severity: Severity
    message: str
    timestamp: datetime = field(default_factory=_utcnow)
    correlation_id: Optional[str] = None
    stage: Optional[str] = None


class StageState(str, enum.Enum):
    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


@dataclass
class StageResult:
    stage_name: str
    state: StageState = StageState.PENDING
    error: Optional[DeployError] = None


@dataclass(frozen=True)
class DeploymentResult:
    service_name: str
    url: str


@dataclass
class PipelineReport:
    """오케스트레이터 한 번 실행의 결과. 실행마다 새로 만든다."""

    correlation_id: str
    request: DeploymentRequest
    stages: List[StageResult]
    result: Optional[DeploymentResult] = None
    error: Optional[DeployError] = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None and self.error is None

    def summary(self) -> str:
        lines: List[str] = []
        lines.append("# Deploy summary")
        lines.append(f"- project: {self.request.project_id}")
        lines.append(f"- cluster: {self.request.cluster_id} ({self.request.region})")
        lines.append(f"- service: {self.request.service_name}")
        lines.append(f"- run: {self.correlation_id}")
        lines.append("")

        lines.append("## Stages")
        for s in self.stages:
            lines.append(f"- {s.stage_name}: {s.state.value}")

        lines.append("")
        lines.append("## Result")
        if self.result is not None:
            lines.append(f"- url: {self.result.url}")
        elif self.error is not None:
            lines.append(f"- error: {self.error}")
        else:
            lines.append("- (none)")

        return "\n".join(lines)
