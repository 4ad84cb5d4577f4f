from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional, List

from dotenv import load_dotenv

from .gcp_project import REQUIRED_APIS_BASE


ENV_FILES_DEFAULT_ORDER = [".env", ".env.infra", ".env.secrets"]


def load_env_files(base_dir: str = ".",
                   files: Optional[List[str]] = None) -> None:
    """
    주어진 디렉토리에서 .env 계열 파일을 순서대로 로드한다.
    후순위 파일이 같은 키를 덮어쓴다.
    """
    order = files or ENV_FILES_DEFAULT_ORDER
    for name in order:
        path = os.path.join(base_dir, name)
        if os.path.exists(path):
            load_dotenv(path, override=True)


def _get_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y"}


def _get_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return list(default)
    return [p.strip() for p in raw.split(",") if p.strip()]


@dataclass
class DeployConfig:
    # 필수 공통
    gcp_project_id: str
    gcp_region: str = "europe-west1"

    # 배포 대상
    gke_cluster: str = "default-cluster"
    service_name: str = "app"

    # 파생 리소스 이름
    bucket_suffix: str = "gke-deployments"
    required_apis: List[str] = field(default_factory=lambda: list(REQUIRED_APIS_BASE))

    # 폴링/타임아웃 (초)
    api_enable_timeout: float = 300.0
    repository_timeout: float = 300.0
    build_timeout: float = 1200.0
    endpoint_timeout: float = 300.0
    poll_interval: float = 2.0
    poll_max_interval: float = 15.0

    # 클러스터 존재 확인을 빌드 전에 수행
    check_cluster_first: bool = False

    kubeconfig: Optional[str] = None

    def bucket_name(self, project_id: Optional[str] = None) -> str:
        return f"{project_id or self.gcp_project_id}-{self.bucket_suffix}"

    @classmethod
    def from_env(cls, project_id: Optional[str] = None) -> "DeployConfig":
        """
        환경변수에서 설정을 읽는다. project_id 를 주면 GCP_PROJECT_ID 보다 우선한다.
        """
        # 필수값
        missing: List[str] = []
        invalid: List[str] = []

        def req(name: str) -> str:
            val = os.getenv(name)
            if not val:
                missing.append(name)
            return val or ""

        def num(name: str, default: float) -> float:
            raw = os.getenv(name)
            if raw is None or raw.strip() == "":
                return default
            try:
                value = float(raw)
            except ValueError:
                invalid.append(name)
                return default
            if value <= 0:
                invalid.append(name)
                return default
            return value

        cfg = cls(
            gcp_project_id=project_id or req("GCP_PROJECT_ID"),
            gcp_region=os.getenv("GCP_REGION") or "europe-west1",
            gke_cluster=os.getenv("GKE_CLUSTER") or "default-cluster",
            service_name=os.getenv("SERVICE_NAME") or "app",
            bucket_suffix=os.getenv("DEPLOY_BUCKET_SUFFIX") or "gke-deployments",
            required_apis=_get_list("REQUIRED_APIS", REQUIRED_APIS_BASE),
            api_enable_timeout=num("API_ENABLE_TIMEOUT_SECONDS", 300.0),
            repository_timeout=num("REPOSITORY_TIMEOUT_SECONDS", 300.0),
            build_timeout=num("BUILD_TIMEOUT_SECONDS", 1200.0),
            endpoint_timeout=num("ENDPOINT_TIMEOUT_SECONDS", 300.0),
            poll_interval=num("POLL_INTERVAL_SECONDS", 2.0),
            poll_max_interval=num("POLL_MAX_INTERVAL_SECONDS", 15.0),
            check_cluster_first=_get_bool("CHECK_CLUSTER_FIRST", False),
            kubeconfig=os.getenv("KUBECONFIG_PATH") or None,
        )

        if missing:
            raise ValueError(
                "필수 환경변수가 누락되었습니다: " + ", ".join(sorted(set(missing)))
            )
        if invalid:
            raise ValueError(
                "숫자(양수)여야 하는 환경변수 값이 잘못되었습니다: " + ", ".join(sorted(set(invalid)))
            )

        return cfg
