"""
provisioner
-----------

'없으면 만든다(ensure-exists)' 패턴의 공통 구현.

현재 상태를 먼저 읽고, 이미 원하는 상태면 아무것도 바꾸지 않고 참조만 돌려준다.
아니면 생성/enable 을 호출하고, 비동기 작업이 돌아오면 OperationPoller 로 기다린다.
클러스터는 존재 여부만 확인하며 절대 만들지 않는다.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Protocol, Tuple

from .errors import PreconditionError
from .gcp_project import ApiState
from .logging_utils import get_logger
from .models import Operation, ResourceKind, ResourceRef
from .poller import OperationPoller


logger = get_logger(__name__)


class ApiFlags(Protocol):
    def get_state(self, api: str) -> ApiState: ...

    def enable(self, api: str) -> Operation: ...


class ObjectStorage(Protocol):
    def get_bucket(self, name: str) -> Optional[ResourceRef]: ...

    def create_bucket(self, name: str, region: str) -> ResourceRef: ...

    def upload(self, bucket: str, key: str, data: bytes) -> None: ...


class Registry(Protocol):
    def get_repository(self, name: str) -> Optional[ResourceRef]: ...

    def create_repository(self, name: str, repo_format: str = "DOCKER") -> Operation: ...

    def repository_url(self, name: str) -> str: ...


class ClusterLookup(Protocol):
    def cluster_exists(self, cluster_id: str) -> bool: ...


@dataclass(frozen=True)
class ResourceSpec:
    """원하는 상태. 종류마다 쓰는 필드만 채운다."""

    region: Optional[str] = None
    repo_format: str = "DOCKER"
    timeout: float = 300.0


class ResourceProvisioner:
    """
    파이프라인 실행 하나에 묶인 프로비저너.

    같은 인스턴스에서 이미 확보한 리소스는 다시 조회/생성하지 않는다.
    """

    def __init__(
        self,
        *,
        apis: ApiFlags,
        storage: ObjectStorage,
        registry: Registry,
        clusters: ClusterLookup,
        poller: OperationPoller,
    ) -> None:
        self.apis = apis
        self.storage = storage
        self.registry = registry
        self.clusters = clusters
        self.poller = poller
        self._known: Dict[Tuple[ResourceKind, str, ResourceSpec], ResourceRef] = {}

    def ensure(self, kind: ResourceKind, identity: str, spec: Optional[ResourceSpec] = None) -> ResourceRef:
        spec = spec or ResourceSpec()
        key = (kind, identity, spec)
        if key in self._known:
            logger.debug("이미 확보된 리소스: %s %s", kind.value, identity)
            return self._known[key]

        if kind is ResourceKind.API:
            ref = self._ensure_api(identity, spec)
        elif kind is ResourceKind.BUCKET:
            ref = self._ensure_bucket(identity, spec)
        elif kind is ResourceKind.REPOSITORY:
            ref = self._ensure_repository(identity, spec)
        elif kind is ResourceKind.CLUSTER:
            ref = self._ensure_cluster(identity)
        else:
            raise ValueError(f"지원하지 않는 리소스 종류입니다: {kind!r}")

        self._known[key] = ref
        return ref

    def cluster_exists(self, cluster_id: str) -> bool:
        return self.clusters.cluster_exists(cluster_id)

    def inspect(self, kind: ResourceKind, identity: str) -> bool:
        """
        리소스가 이미 원하는 상태인지 확인만 하고, 아무것도 만들지 않는다.
        """
        if kind is ResourceKind.API:
            return self.apis.get_state(identity) is ApiState.ENABLED
        if kind is ResourceKind.BUCKET:
            return self.storage.get_bucket(identity) is not None
        if kind is ResourceKind.REPOSITORY:
            return self.registry.get_repository(identity) is not None
        if kind is ResourceKind.CLUSTER:
            return self.cluster_exists(identity)
        raise ValueError(f"지원하지 않는 리소스 종류입니다: {kind!r}")

    def _ensure_api(self, api: str, spec: ResourceSpec) -> ResourceRef:
        ref = ResourceRef(kind=ResourceKind.API, name=api)
        if self.apis.get_state(api) is ApiState.ENABLED:
            logger.debug("API 가 이미 활성화되어 있습니다: %s", api)
            return ref

        logger.info("API [%s] 가 비활성화 상태입니다. 활성화합니다.", api)
        operation = self.apis.enable(api)
        self.poller.wait(operation, spec.timeout, description=f"API [{api}] 활성화")
        return ref

    def _ensure_bucket(self, name: str, spec: ResourceSpec) -> ResourceRef:
        existing = self.storage.get_bucket(name)
        if existing is not None:
            logger.info("기존 GCS 버킷을 사용합니다: %s", name)
            return existing

        if not spec.region:
            raise ValueError("버킷 생성에는 region 이 필요합니다")
        return self.storage.create_bucket(name, spec.region)

    def _ensure_repository(self, name: str, spec: ResourceSpec) -> ResourceRef:
        existing = self.registry.get_repository(name)
        if existing is not None:
            logger.info("기존 Artifact Registry 리포를 사용합니다: %s", name)
            return existing

        operation = self.registry.create_repository(name, spec.repo_format)
        self.poller.wait(operation, spec.timeout, description=f"Artifact Registry 리포 [{name}] 생성")
        logger.info("Artifact Registry 리포를 생성했습니다: %s", name)
        return ResourceRef(kind=ResourceKind.REPOSITORY, name=name, url=self.registry.repository_url(name))

    def _ensure_cluster(self, cluster_id: str) -> ResourceRef:
        if not self.cluster_exists(cluster_id):
            raise PreconditionError(
                f"GKE 클러스터 {cluster_id} 가 존재하지 않습니다. 먼저 클러스터를 생성하세요."
            )
        return ResourceRef(kind=ResourceKind.CLUSTER, name=cluster_id)
