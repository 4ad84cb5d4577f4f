"""
gcp_gke
-------

GKE 클러스터 존재 확인(Container API)과 kubectl 기반 클러스터 조작.

클러스터 생성/삭제는 하지 않는다. 이미 있는 클러스터에만 배포한다.
"""

from __future__ import annotations

import json
import os
from typing import Optional

from google.api_core.exceptions import NotFound

from .errors import from_google_error
from .gcp_context import GcpContext
from .logging_utils import get_logger
from .manifests import Descriptor, render
from .subprocess_utils import run_command


logger = get_logger(__name__)


class ClusterManager:
    def __init__(self, ctx: GcpContext) -> None:
        self._ctx = ctx

    def cluster_path(self, cluster_id: str) -> str:
        return f"projects/{self._ctx.project_id}/locations/{self._ctx.region}/clusters/{cluster_id}"

    def cluster_exists(self, cluster_id: str) -> bool:
        """NotFound 는 오류가 아니라 False 로 돌려준다."""
        try:
            self._ctx.cluster_manager.get_cluster(name=self.cluster_path(cluster_id))
        except NotFound:
            return False
        except Exception as e:  # noqa: BLE001
            raise from_google_error(e, f"GKE 클러스터 {cluster_id} 상태를 확인할 수 없습니다") from e
        return True


class KubectlCluster:
    """
    gcloud / kubectl CLI 로 클러스터 자격증명 획득, 매니페스트 적용,
    외부 주소 조회를 수행한다.

    자격증명은 kubeconfig 파일에 기록되므로, 실행마다 별도 파일을 쓰고 싶으면
    kubeconfig 경로를 넘긴다.

    외부 주소 조회는 폴링 중에 반복 호출되므로 lookup_timeout 으로 짧게 끊는다.
    """

    def __init__(
        self,
        ctx: GcpContext,
        *,
        kubeconfig: Optional[str] = None,
        timeout: float = 300.0,
        lookup_timeout: float = 30.0,
    ) -> None:
        self._ctx = ctx
        self._kubeconfig = kubeconfig
        self._timeout = timeout
        self._lookup_timeout = lookup_timeout

    def _env(self) -> Optional[dict]:
        if not self._kubeconfig:
            return None
        env = dict(os.environ)
        env["KUBECONFIG"] = self._kubeconfig
        return env

    def fetch_credentials(self, cluster_id: str) -> None:
        cmd = [
            "gcloud",
            "container",
            "clusters",
            "get-credentials",
            cluster_id,
            f"--location={self._ctx.region}",
            f"--project={self._ctx.project_id}",
            "--quiet",
        ]
        run_command(cmd, env=self._env(), timeout=self._timeout)

    def apply_descriptor(self, descriptor: Descriptor) -> None:
        cmd = ["kubectl", "apply", "-f", "-"]
        run_command(cmd, input=render(descriptor), env=self._env(), timeout=self._timeout)

    def get_external_address(self, service_object: str) -> Optional[str]:
        """LoadBalancer ingress 의 IP(없으면 hostname). 아직 할당 전이면 None."""
        cmd = ["kubectl", "get", "service", service_object, "-o", "json"]
        result = run_command(cmd, env=self._env(), timeout=self._lookup_timeout)
        return parse_external_address(result.stdout)


def parse_external_address(raw: str) -> Optional[str]:
    try:
        obj = json.loads(raw or "{}")
    except ValueError:
        logger.debug("kubectl 출력이 JSON 이 아닙니다: %s", raw[:200])
        return None

    ingress = ((obj.get("status") or {}).get("loadBalancer") or {}).get("ingress") or []
    for entry in ingress:
        address = entry.get("ip") or entry.get("hostname")
        if address:
            return address
    return None
