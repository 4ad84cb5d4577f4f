from __future__ import annotations

import subprocess
from dataclasses import dataclass
from textwrap import shorten
from typing import Mapping, Optional, Sequence

from .errors import OperationTimeoutError, PermanentRemoteError, PreconditionError
from .logging_utils import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class RunResult:
    returncode: int
    stdout: str
    stderr: str


def run_command(
    cmd: Sequence[str],
    *,
    input: Optional[str] = None,  # noqa: A002
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = 300.0,
) -> RunResult:
    """
    subprocess 실행 공통 유틸. (gcloud/kubectl)

    - stdout/stderr 를 캡처하고, 실패 시 일부를 에러 메시지에 포함
    - input 이 있으면 stdin 으로 넘긴다 (kubectl apply -f -)
    - 명령 없음 → PreconditionError, 타임아웃 → OperationTimeoutError,
      exit != 0 → PermanentRemoteError
    """
    logger.info("명령 실행: %s", " ".join(cmd))
    try:
        result = subprocess.run(
            list(cmd),
            check=True,
            capture_output=True,
            text=True,
            input=input,
            timeout=timeout,
            cwd=cwd,
            env=dict(env) if env is not None else None,
        )
        if result.stdout:
            logger.debug("명령 stdout: %s", shorten(result.stdout.strip(), width=2000))
        if result.stderr:
            logger.debug("명령 stderr: %s", shorten(result.stderr.strip(), width=2000))
        return RunResult(returncode=result.returncode, stdout=result.stdout or "", stderr=result.stderr or "")
    except FileNotFoundError as e:
        raise PreconditionError(
            f"필요한 명령을 찾을 수 없습니다: {cmd[0]} (gcloud/kubectl 이 설치되어 있는지 확인하세요)"
        ) from e
    except subprocess.TimeoutExpired as e:
        raise OperationTimeoutError(
            f"명령 실행이 {timeout}초 안에 끝나지 않았습니다: {' '.join(cmd)}"
        ) from e
    except subprocess.CalledProcessError as e:
        stdout = (e.stdout or "").strip()
        stderr = (e.stderr or "").strip()
        detail = None
        if stderr:
            detail = "stderr:\n" + shorten(stderr, width=2000)
        elif stdout:
            detail = "stdout:\n" + shorten(stdout, width=2000)
        raise PermanentRemoteError(
            f"명령 실행 실패: {' '.join(cmd)} (exit={e.returncode})",
            detail=detail,
        ) from e
