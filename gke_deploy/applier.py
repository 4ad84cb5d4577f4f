"""
applier
-------

이미 존재가 확인된 클러스터에 디스크립터를 적용하고,
LoadBalancer 에 외부 주소가 붙을 때까지 기다린다.
"""

from __future__ import annotations

from typing import Optional, Protocol

from .logging_utils import get_logger
from .manifests import Descriptor
from .poller import CallableOperation, OperationPoller


logger = get_logger(__name__)


class ClusterAccess(Protocol):
    def fetch_credentials(self, cluster_id: str) -> None: ...

    def apply_descriptor(self, descriptor: Descriptor) -> None: ...

    def get_external_address(self, service_object: str) -> Optional[str]: ...


class DeploymentApplier:
    def __init__(self, cluster: ClusterAccess, poller: OperationPoller, *, endpoint_timeout: float = 300.0) -> None:
        self.cluster = cluster
        self.poller = poller
        self.endpoint_timeout = endpoint_timeout

    def apply(self, cluster_id: str, deployment: Descriptor, service: Descriptor) -> str:
        """
        자격증명 획득 → Deployment/Service 적용 → 외부 주소 대기 후 URL 반환.

        적용 실패는 원격 오류로, 주소 대기 초과는 OperationTimeoutError 로 구분된다.
        """
        logger.info("클러스터 자격증명 획득: %s", cluster_id)
        self.cluster.fetch_credentials(cluster_id)

        for descriptor in (deployment, service):
            logger.info("적용: %s/%s", descriptor["kind"], descriptor["metadata"]["name"])
            self.cluster.apply_descriptor(descriptor)

        service_object = service["metadata"]["name"]
        address = self.poller.wait(
            CallableOperation(lambda: self.cluster.get_external_address(service_object)),
            self.endpoint_timeout,
            description=f"Service {service_object} 외부 주소 할당",
        )
        url = f"http://{address}"
        logger.info("외부 주소 할당됨: %s", url)
        return url
