"""
gcp_cloud_build
---------------

업로드된 소스로 Cloud Build 를 트리거해 컨테이너 이미지를 만든다.

- Dockerfile 이 있으면 docker build
- 없으면 Cloud Native Buildpacks(pack) 로 빌드

submit 은 빌드 작업 핸들만 돌려주고 완료를 기다리지 않는다.
"""

from __future__ import annotations

from dataclasses import dataclass

from google.cloud.devtools import cloudbuild_v1

from .errors import PermanentRemoteError, from_google_error
from .gcp_context import GcpContext
from .logging_utils import get_logger
from .models import OperationStatus
from .poller import GoogleOperation


logger = get_logger(__name__)

DOCKER_BUILDER = "gcr.io/cloud-builders/docker"
PACK_BUILDER = "gcr.io/k8s-skaffold/pack"
BUILDPACKS_BUILDER_IMAGE = "gcr.io/buildpacks/builder:latest"


@dataclass(frozen=True)
class SourceLocation:
    bucket: str
    object_name: str


def build_steps(target_image: str, has_dockerfile: bool) -> list[dict]:
    if has_dockerfile:
        return [
            {
                "name": DOCKER_BUILDER,
                "args": ["build", "-t", target_image, "."],
            }
        ]
    return [
        {
            "name": PACK_BUILDER,
            "entrypoint": "pack",
            "args": ["build", target_image, "--builder", BUILDPACKS_BUILDER_IMAGE],
        }
    ]


class BuildOperation(GoogleOperation):
    """빌드 작업 완료 후 Build.status 가 SUCCESS 인지까지 확인한다."""

    def poll(self) -> OperationStatus:
        status = super().poll()
        if not status.done or status.error is not None:
            return status

        build = status.result
        if build is not None and build.status != cloudbuild_v1.Build.Status.SUCCESS:
            return OperationStatus.failed(
                PermanentRemoteError(
                    f"Cloud Build 실패 (status={build.status.name})",
                    detail=f"로그: {build.log_url}" if build.log_url else None,
                )
            )
        return status


class CloudBuildTrigger:
    def __init__(self, ctx: GcpContext) -> None:
        self._ctx = ctx

    def submit(self, source: SourceLocation, target_image: str, has_dockerfile: bool) -> BuildOperation:
        strategy = "Dockerfile" if has_dockerfile else "Buildpacks"
        logger.info(
            "Cloud Build 트리거: gs://%s/%s -> %s (%s)",
            source.bucket,
            source.object_name,
            target_image,
            strategy,
        )

        build = cloudbuild_v1.Build(
            source=cloudbuild_v1.Source(
                storage_source=cloudbuild_v1.StorageSource(
                    bucket=source.bucket,
                    object_=source.object_name,
                )
            ),
            steps=[cloudbuild_v1.BuildStep(**step) for step in build_steps(target_image, has_dockerfile)],
            images=[target_image],
        )

        try:
            operation = self._ctx.cloud_build.create_build(
                request={
                    "parent": f"projects/{self._ctx.project_id}/locations/{self._ctx.region}",
                    "project_id": self._ctx.project_id,
                    "build": build,
                }
            )
        except Exception as e:  # noqa: BLE001
            raise from_google_error(e, "Cloud Build 제출 실패") from e

        return BuildOperation(operation, description=f"Cloud Build ({target_image})")
