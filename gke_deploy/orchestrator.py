"""
orchestrator
------------

배포 파이프라인의 단계 순서를 아는 유일한 곳.

EnableAPIs → EnsureBucket → PackageSource → UploadSource → EnsureRegistry →
TriggerBuild → EnsureCluster → ApplyManifests 순서로 실행하며, 한 단계라도
실패하면 즉시 멈춘다(fail-fast). 이미 만들어진 원격 리소스는 되돌리지 않는다.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Tuple

from . import manifests
from .applier import ClusterAccess, DeploymentApplier
from .config import DeployConfig
from .errors import CancelledError, DeployError
from .gcp_artifact_registry import ArtifactRegistry
from .gcp_cloud_build import CloudBuildTrigger, SourceLocation
from .gcp_context import GcpContext
from .gcp_gcs import GcsStorage
from .gcp_gke import ClusterManager, KubectlCluster
from .gcp_project import ServiceUsageApis
from .logging_utils import get_logger
from .models import (
    DeploymentRequest,
    DeploymentResult,
    Operation,
    PipelineReport,
    ResourceKind,
    ResourceRef,
    StageResult,
    StageState,
)
from .packager import ArtifactPackager, archive_names, has_build_definition
from .poller import OperationPoller
from .progress import ProgressEmitter, ProgressSink
from .provisioner import ApiFlags, ClusterLookup, ObjectStorage, Registry, ResourceProvisioner, ResourceSpec


logger = get_logger(__name__)


STAGE_ENABLE_APIS = "EnableAPIs"
STAGE_ENSURE_BUCKET = "EnsureBucket"
STAGE_PACKAGE_SOURCE = "PackageSource"
STAGE_UPLOAD_SOURCE = "UploadSource"
STAGE_ENSURE_REGISTRY = "EnsureRegistry"
STAGE_TRIGGER_BUILD = "TriggerBuild"
STAGE_ENSURE_CLUSTER = "EnsureCluster"
STAGE_APPLY_MANIFESTS = "ApplyManifests"

DEFAULT_STAGE_ORDER: List[str] = [
    STAGE_ENABLE_APIS,
    STAGE_ENSURE_BUCKET,
    STAGE_PACKAGE_SOURCE,
    STAGE_UPLOAD_SOURCE,
    STAGE_ENSURE_REGISTRY,
    STAGE_TRIGGER_BUILD,
    STAGE_ENSURE_CLUSTER,
    STAGE_APPLY_MANIFESTS,
]

# 빌드 전에 클러스터를 확인하면 존재하지 않는 클러스터로 빌드를 낭비하지 않는다.
CLUSTER_FIRST_STAGE_ORDER: List[str] = [
    STAGE_ENABLE_APIS,
    STAGE_ENSURE_CLUSTER,
    STAGE_ENSURE_BUCKET,
    STAGE_PACKAGE_SOURCE,
    STAGE_UPLOAD_SOURCE,
    STAGE_ENSURE_REGISTRY,
    STAGE_TRIGGER_BUILD,
    STAGE_APPLY_MANIFESTS,
]

SOURCE_ARCHIVE_NAME = "source.zip"
IMAGE_TAG = "latest"


class BuildService(Protocol):
    def submit(self, source: SourceLocation, target_image: str, has_dockerfile: bool) -> Operation: ...


@dataclass
class Collaborators:
    """파이프라인이 의존하는 외부 기능 묶음."""

    apis: ApiFlags
    storage: ObjectStorage
    registry: Registry
    builder: BuildService
    clusters: ClusterLookup
    cluster_access: ClusterAccess

    @classmethod
    def for_gcp(cls, project_id: str, region: str, cfg: DeployConfig) -> "Collaborators":
        ctx = GcpContext(project_id, region)
        return cls(
            apis=ServiceUsageApis(ctx),
            storage=GcsStorage(ctx),
            registry=ArtifactRegistry(ctx),
            builder=CloudBuildTrigger(ctx),
            clusters=ClusterManager(ctx),
            cluster_access=KubectlCluster(
                ctx,
                kubeconfig=cfg.kubeconfig,
                lookup_timeout=min(30.0, cfg.endpoint_timeout),
            ),
        )


@dataclass
class _RunState:
    """한 번의 실행 동안 단계 사이에 넘겨지는 출력들."""

    request: DeploymentRequest
    emitter: ProgressEmitter
    provisioner: ResourceProvisioner
    applier: DeploymentApplier
    poller: OperationPoller
    builder: BuildService
    bucket: Optional[ResourceRef] = None
    archive: Optional[bytes] = None
    source: Optional[SourceLocation] = None
    repository: Optional[ResourceRef] = None
    image: Optional[str] = None
    cluster: Optional[ResourceRef] = None
    result: Optional[DeploymentResult] = None


def repository_name(service_name: str) -> str:
    return f"{service_name}-repo"


def source_object_name(service_name: str) -> str:
    return f"{service_name}/{SOURCE_ARCHIVE_NAME}"


class Orchestrator:
    def __init__(
        self,
        cfg: DeployConfig,
        collaborators: Optional[Collaborators] = None,
        *,
        packager: Optional[ArtifactPackager] = None,
    ) -> None:
        self.cfg = cfg
        self._collaborators = collaborators
        self.packager = packager or ArtifactPackager()

    def stage_order(self) -> List[str]:
        if self.cfg.check_cluster_first:
            return list(CLUSTER_FIRST_STAGE_ORDER)
        return list(DEFAULT_STAGE_ORDER)

    def _stage_fn(self, name: str) -> Callable[[_RunState], None]:
        return {
            STAGE_ENABLE_APIS: self._enable_apis,
            STAGE_ENSURE_BUCKET: self._ensure_bucket,
            STAGE_PACKAGE_SOURCE: self._package_source,
            STAGE_UPLOAD_SOURCE: self._upload_source,
            STAGE_ENSURE_REGISTRY: self._ensure_registry,
            STAGE_TRIGGER_BUILD: self._trigger_build,
            STAGE_ENSURE_CLUSTER: self._ensure_cluster,
            STAGE_APPLY_MANIFESTS: self._apply_manifests,
        }[name]

    def _new_state(
        self,
        request: DeploymentRequest,
        emitter: ProgressEmitter,
        cancel_event: threading.Event,
    ) -> _RunState:
        collab = self._collaborators or Collaborators.for_gcp(request.project_id, request.region, self.cfg)
        poller = OperationPoller(
            interval=self.cfg.poll_interval,
            max_interval=self.cfg.poll_max_interval,
            cancel_event=cancel_event,
        )
        provisioner = ResourceProvisioner(
            apis=collab.apis,
            storage=collab.storage,
            registry=collab.registry,
            clusters=collab.clusters,
            poller=poller,
        )
        applier = DeploymentApplier(collab.cluster_access, poller, endpoint_timeout=self.cfg.endpoint_timeout)
        return _RunState(
            request=request,
            emitter=emitter,
            provisioner=provisioner,
            applier=applier,
            poller=poller,
            builder=collab.builder,
        )

    def execute(
        self,
        request: DeploymentRequest,
        sink: Optional[ProgressSink] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> PipelineReport:
        """
        파이프라인을 실행하고 단계별 결과를 담은 리포트를 돌려준다.

        DeployError 는 리포트의 error 로 담기며 밖으로 던지지 않는다.
        """
        correlation_id = uuid.uuid4().hex[:12]
        emitter = ProgressEmitter(correlation_id, sink)
        order = self.stage_order()
        report = PipelineReport(
            correlation_id=correlation_id,
            request=request,
            stages=[StageResult(stage_name=name) for name in order],
        )

        emitter.info(
            f"배포 시작: service={request.service_name} project={request.project_id} "
            f"cluster={request.cluster_id} ({request.region})"
        )

        try:
            request.validate()
        except DeployError as e:
            e.stage = e.stage or "ValidateRequest"
            emitter.error(f"배포 실패: {e}")
            report.error = e
            return report

        cancel_event = cancel_event or threading.Event()
        state = self._new_state(request, emitter, cancel_event)

        for stage in report.stages:
            emitter.stage = stage.stage_name
            stage.state = StageState.RUNNING
            emitter.info(f"단계 시작: {stage.stage_name}")

            try:
                if cancel_event.is_set():
                    raise CancelledError("배포가 취소되었습니다")
                self._stage_fn(stage.stage_name)(state)
            except DeployError as e:
                err = e
            except Exception as e:  # noqa: BLE001
                logger.exception("단계 %s 에서 예기치 못한 오류", stage.stage_name)
                err = DeployError(f"예기치 못한 오류: {e}", detail=repr(e))
                err.__cause__ = e
            else:
                stage.state = StageState.SUCCEEDED
                emitter.info(f"단계 완료: {stage.stage_name}")
                continue

            if err.stage is None:
                err.stage = stage.stage_name
            stage.state = StageState.FAILED
            stage.error = err
            report.error = err
            emitter.error(f"배포 실패: {err}")
            return report

        emitter.stage = None
        report.result = state.result
        emitter.info(f"배포 성공! 서비스 주소: {state.result.url}")
        return report

    def run(
        self,
        request: DeploymentRequest,
        sink: Optional[ProgressSink] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> DeploymentResult:
        """성공하면 DeploymentResult, 실패하면 실패한 단계가 붙은 DeployError 를 던진다."""
        report = self.execute(request, sink, cancel_event)
        if report.error is not None:
            raise report.error
        return report.result

    def plan(self, request: DeploymentRequest) -> str:
        """
        실제 GCP 호출 없이 실행될 단계와 파생 리소스 이름을 요약한다.
        """
        repo = repository_name(request.service_name)
        lines: List[str] = []
        lines.append("# Deploy plan")
        lines.append(f"- project: {request.project_id}")
        lines.append(f"- region: {request.region}")
        lines.append(f"- cluster: {request.cluster_id}")
        lines.append(f"- service: {request.service_name}")
        lines.append("")

        lines.append("## Derived names")
        lines.append(f"- bucket: {self.cfg.bucket_name(request.project_id)}")
        lines.append(f"- source object: {source_object_name(request.service_name)}")
        lines.append(f"- repository: {repo}")
        lines.append(f"- k8s deployment: {request.service_name}")
        lines.append(f"- k8s service: {manifests.service_object_name(request.service_name)}")
        lines.append(f"- required APIs: {', '.join(self.cfg.required_apis)}")
        lines.append("")

        lines.append("## Stages")
        for i, name in enumerate(self.stage_order(), start=1):
            lines.append(f"{i}. {name}")

        return "\n".join(lines)

    def check(self, request: DeploymentRequest) -> Tuple[str, bool]:
        """
        리소스를 만들지 않고 현재 상태만 점검한다.

        Returns:
            summary: 사람이 읽기 좋은 텍스트 요약
            has_issues: 클러스터 없음 등 배포가 불가능한 이슈가 있는지 여부
        """
        state = self._new_state(request, ProgressEmitter("check"), threading.Event())
        provisioner = state.provisioner

        lines: List[str] = []
        critical: List[str] = []
        warnings: List[str] = []

        lines.append("# Deploy pre-check")
        lines.append(f"- project: {request.project_id}")
        lines.append(f"- region: {request.region}")
        lines.append("")

        checks = [(ResourceKind.API, api) for api in self.cfg.required_apis]
        checks.append((ResourceKind.BUCKET, self.cfg.bucket_name(request.project_id)))
        checks.append((ResourceKind.REPOSITORY, repository_name(request.service_name)))
        checks.append((ResourceKind.CLUSTER, request.cluster_id))

        lines.append("## Resources")
        for kind, identity in checks:
            try:
                ok = provisioner.inspect(kind, identity)
            except DeployError as e:
                msg = f"{kind.value} {identity}: 확인 불가 ({e})"
                lines.append(f"- {msg}")
                critical.append(msg)
                continue

            if ok:
                lines.append(f"- {kind.value} {identity}: OK")
            elif kind is ResourceKind.CLUSTER:
                # 클러스터는 우리가 만들지 않으므로 크리티컬
                msg = f"{kind.value} {identity}: 없음 (먼저 생성해야 함)"
                lines.append(f"- {msg}")
                critical.append(msg)
            else:
                msg = f"{kind.value} {identity}: 없음 (배포 시 생성/활성화됨)"
                lines.append(f"- {msg}")
                warnings.append(msg)

        lines.append("")
        lines.append("## Summary")
        if critical:
            lines.append("- 상태: 크리티컬 이슈가 있습니다. 배포 전 반드시 해결해야 합니다.")
        elif warnings:
            lines.append("- 상태: 경고만 있습니다. 배포 시 일부 리소스가 새로 생성됩니다.")
        else:
            lines.append("- 상태: 주요 이슈 없음 (배포 가능 상태로 보입니다)")

        return "\n".join(lines), bool(critical)

    # ------------------------------------------------------------------
    # stages
    # ------------------------------------------------------------------

    def _enable_apis(self, state: _RunState) -> None:
        state.emitter.info("필수 API 확인 및 활성화 중...")
        spec = ResourceSpec(timeout=self.cfg.api_enable_timeout)
        for api in self.cfg.required_apis:
            state.emitter.debug(f"API [{api}] 확인")
            state.provisioner.ensure(ResourceKind.API, api, spec)
        state.emitter.info("필수 API 가 모두 활성화되어 있습니다.")

    def _ensure_bucket(self, state: _RunState) -> None:
        name = self.cfg.bucket_name(state.request.project_id)
        state.emitter.info(f"GCS 버킷 확인: {name}")
        state.bucket = state.provisioner.ensure(
            ResourceKind.BUCKET, name, ResourceSpec(region=state.request.region)
        )

    def _package_source(self, state: _RunState) -> None:
        state.emitter.info(f"소스 파일 {len(state.request.files)}개 패키징 중...")
        state.archive = self.packager.package(state.request.files)
        state.emitter.info(f"소스 아카이브 생성 완료 ({len(state.archive)} bytes)")

    def _upload_source(self, state: _RunState) -> None:
        key = source_object_name(state.request.service_name)
        state.emitter.info(f"소스 업로드: gs://{state.bucket.name}/{key}")
        state.provisioner.storage.upload(state.bucket.name, key, state.archive)
        state.source = SourceLocation(bucket=state.bucket.name, object_name=key)

    def _ensure_registry(self, state: _RunState) -> None:
        name = repository_name(state.request.service_name)
        state.emitter.info(f"Artifact Registry 리포 확인: {name}")
        state.repository = state.provisioner.ensure(
            ResourceKind.REPOSITORY,
            name,
            ResourceSpec(repo_format="DOCKER", timeout=self.cfg.repository_timeout),
        )

    def _trigger_build(self, state: _RunState) -> None:
        image = f"{state.repository.url}/{state.request.service_name}:{IMAGE_TAG}"
        has_dockerfile = has_build_definition(archive_names(state.archive))
        strategy = "Dockerfile" if has_dockerfile else "Buildpacks"
        state.emitter.info(f"Cloud Build 로 이미지 빌드 시작 ({strategy}): {image}")

        operation = state.builder.submit(state.source, image, has_dockerfile)
        state.poller.wait(operation, self.cfg.build_timeout, description="Cloud Build")
        state.image = image
        state.emitter.info(f"이미지 빌드/푸시 완료: {image}")

    def _ensure_cluster(self, state: _RunState) -> None:
        cluster_id = state.request.cluster_id
        state.emitter.info(f"GKE 클러스터 확인: {cluster_id}")
        state.cluster = state.provisioner.ensure(ResourceKind.CLUSTER, cluster_id)
        state.emitter.info(f"GKE 클러스터 {cluster_id} 가 존재합니다.")

    def _apply_manifests(self, state: _RunState) -> None:
        service_name = state.request.service_name
        deployment, service = manifests.generate(service_name, state.image)
        state.emitter.info(f"{service_name} 를 GKE 에 배포 중...")
        url = state.applier.apply(state.cluster.name, deployment, service)
        state.result = DeploymentResult(service_name=service_name, url=url)
