"""
gcp_context
-----------

GCP 클라이언트 묶음.

설정 하나당 한 번 만들어서 각 어댑터에 참조로 넘긴다. 클라이언트는
처음 쓰일 때 생성되며, 인스턴스 밖에 공유되는 전역 상태는 없다.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict

from google.cloud import artifactregistry_v1
from google.cloud import container_v1
from google.cloud import service_usage_v1
from google.cloud import storage
from google.cloud.devtools import cloudbuild_v1

from .logging_utils import get_logger


logger = get_logger(__name__)


class GcpContext:
    def __init__(self, project_id: str, region: str) -> None:
        self.project_id = project_id
        self.region = region
        self._lock = threading.Lock()
        self._clients: Dict[str, Any] = {}

    def _client(self, key: str, factory: Callable[[], Any]) -> Any:
        with self._lock:
            if key not in self._clients:
                logger.debug("GCP 클라이언트 생성: %s (project=%s)", key, self.project_id)
                self._clients[key] = factory()
            return self._clients[key]

    @property
    def storage(self) -> storage.Client:
        return self._client("storage", lambda: storage.Client(project=self.project_id))

    @property
    def service_usage(self) -> service_usage_v1.ServiceUsageClient:
        return self._client("service_usage", service_usage_v1.ServiceUsageClient)

    @property
    def artifact_registry(self) -> artifactregistry_v1.ArtifactRegistryClient:
        return self._client("artifact_registry", artifactregistry_v1.ArtifactRegistryClient)

    @property
    def cloud_build(self) -> cloudbuild_v1.CloudBuildClient:
        return self._client("cloud_build", cloudbuild_v1.CloudBuildClient)

    @property
    def cluster_manager(self) -> container_v1.ClusterManagerClient:
        return self._client("cluster_manager", container_v1.ClusterManagerClient)
