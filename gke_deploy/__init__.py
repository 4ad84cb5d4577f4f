"""
gke_deploy
----------

로컬 소스 파일을 Cloud Build 로 컨테이너 이미지로 만들고,
이미 존재하는 GKE 클러스터에 Deployment + LoadBalancer Service 로 배포하는 패키지.

필요한 API 활성화, GCS 버킷, Artifact Registry 리포는 없으면 만들고(ensure-exists),
있으면 그대로 사용한다.
"""

from .errors import (
    CancelledError,
    DeployError,
    NotFoundError,
    OperationTimeoutError,
    PermanentRemoteError,
    PreconditionError,
    TransientRemoteError,
    ValidationError,
)
from .models import DeploymentRequest, DeploymentResult, SourceFile

__all__ = [
    "CancelledError",
    "DeployError",
    "DeploymentRequest",
    "DeploymentResult",
    "NotFoundError",
    "OperationTimeoutError",
    "PermanentRemoteError",
    "PreconditionError",
    "SourceFile",
    "TransientRemoteError",
    "ValidationError",
]
