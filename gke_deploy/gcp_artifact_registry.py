"""
gcp_artifact_registry
---------------------

Artifact Registry 리포지토리 존재 여부 확인 및 생성을 담당하는 모듈.
"""

from __future__ import annotations

from typing import Optional

from google.api_core.exceptions import NotFound
from google.cloud import artifactregistry_v1

from .errors import ValidationError, from_google_error
from .gcp_context import GcpContext
from .logging_utils import get_logger
from .models import ResourceKind, ResourceRef
from .poller import GoogleOperation


logger = get_logger(__name__)


class ArtifactRegistry:
    def __init__(self, ctx: GcpContext) -> None:
        self._ctx = ctx

    @property
    def _parent(self) -> str:
        return f"projects/{self._ctx.project_id}/locations/{self._ctx.region}"

    def repository_url(self, name: str) -> str:
        return f"{self._ctx.region}-docker.pkg.dev/{self._ctx.project_id}/{name}"

    def _ref(self, name: str) -> ResourceRef:
        return ResourceRef(kind=ResourceKind.REPOSITORY, name=name, url=self.repository_url(name))

    def get_repository(self, name: str) -> Optional[ResourceRef]:
        full_name = f"{self._parent}/repositories/{name}"
        try:
            self._ctx.artifact_registry.get_repository(name=full_name)
        except NotFound:
            return None
        except Exception as e:  # noqa: BLE001
            raise from_google_error(e, f"Artifact Registry 리포를 조회할 수 없습니다: {name}") from e
        return self._ref(name)

    def create_repository(self, name: str, repo_format: str = "DOCKER") -> GoogleOperation:
        try:
            fmt = artifactregistry_v1.Repository.Format[repo_format.upper()]
        except KeyError as e:
            raise ValidationError(f"알 수 없는 리포지토리 형식입니다: {repo_format!r}") from e

        logger.info("Artifact Registry 리포 생성 요청: %s (format=%s)", name, fmt.name)
        try:
            operation = self._ctx.artifact_registry.create_repository(
                parent=self._parent,
                repository_id=name,
                repository=artifactregistry_v1.Repository(format_=fmt),
            )
        except Exception as e:  # noqa: BLE001
            raise from_google_error(e, f"Artifact Registry 리포 생성 실패: {name}") from e
        return GoogleOperation(operation, description=f"Artifact Registry 리포 [{name}] 생성")
