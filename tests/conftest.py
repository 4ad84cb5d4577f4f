"""
pytest 설정:

로컬 작업 환경에 설치된 다른 버전의 gke_deploy 패키지가 존재할 때,
`pytest` 실행 시 site-packages 쪽이 먼저 import 되어 테스트가 깨질 수 있다.

테스트는 항상 현재 레포의 소스를 대상으로 해야 하므로, repo root 를 sys.path 최상단에 고정한다.

원격 GCP 대신 쓰는 가짜 협력자(fake)들도 여기에 둔다.
"""

from __future__ import annotations

import os
import sys
from typing import Dict, List, Optional

import pytest


def pytest_configure() -> None:
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


pytest_configure()

from gke_deploy.config import DeployConfig  # noqa: E402
from gke_deploy.gcp_project import ApiState  # noqa: E402
from gke_deploy.models import DeploymentRequest, ResourceKind, ResourceRef, SourceFile  # noqa: E402
from gke_deploy.orchestrator import Collaborators  # noqa: E402
from gke_deploy.poller import CompletedOperation  # noqa: E402


class FakeApis:
    def __init__(self, disabled: Optional[List[str]] = None) -> None:
        self.disabled = set(disabled or [])
        self.get_calls: List[str] = []
        self.enable_calls: List[str] = []

    def get_state(self, api: str) -> ApiState:
        self.get_calls.append(api)
        return ApiState.DISABLED if api in self.disabled else ApiState.ENABLED

    def enable(self, api: str):  # noqa: ANN201
        self.enable_calls.append(api)
        self.disabled.discard(api)
        return CompletedOperation()


class FakeStorage:
    def __init__(self, existing: Optional[List[str]] = None) -> None:
        self.buckets = set(existing or [])
        self.get_calls: List[str] = []
        self.create_calls: List[tuple] = []
        self.uploads: List[tuple] = []
        self.create_error: Optional[Exception] = None

    def get_bucket(self, name: str) -> Optional[ResourceRef]:
        self.get_calls.append(name)
        if name in self.buckets:
            return ResourceRef(kind=ResourceKind.BUCKET, name=name, url=f"gs://{name}")
        return None

    def create_bucket(self, name: str, region: str) -> ResourceRef:
        self.create_calls.append((name, region))
        if self.create_error is not None:
            raise self.create_error
        self.buckets.add(name)
        return ResourceRef(kind=ResourceKind.BUCKET, name=name, url=f"gs://{name}")

    def upload(self, bucket: str, key: str, data: bytes) -> None:
        self.uploads.append((bucket, key, data))


class FakeRegistry:
    def __init__(self, existing: Optional[List[str]] = None) -> None:
        self.repos = set(existing or [])
        self.create_calls: List[tuple] = []

    def repository_url(self, name: str) -> str:
        return f"us-central1-docker.pkg.dev/test-project/{name}"

    def get_repository(self, name: str) -> Optional[ResourceRef]:
        if name in self.repos:
            return ResourceRef(kind=ResourceKind.REPOSITORY, name=name, url=self.repository_url(name))
        return None

    def create_repository(self, name: str, repo_format: str = "DOCKER"):  # noqa: ANN201
        self.create_calls.append((name, repo_format))
        self.repos.add(name)
        return CompletedOperation()


class FakeBuilder:
    def __init__(self, operation=None) -> None:  # noqa: ANN001
        self.operation = operation
        self.submit_calls: List[tuple] = []

    def submit(self, source, target_image: str, has_dockerfile: bool):  # noqa: ANN001, ANN201
        self.submit_calls.append((source, target_image, has_dockerfile))
        return self.operation or CompletedOperation()


class FakeClusters:
    def __init__(self, exists: bool = True) -> None:
        self.exists = exists
        self.calls: List[str] = []

    def cluster_exists(self, cluster_id: str) -> bool:
        self.calls.append(cluster_id)
        return self.exists


class FakeClusterAccess:
    def __init__(self, addresses: Optional[List[Optional[str]]] = None) -> None:
        # None 은 '아직 할당 전'
        self.addresses = list(addresses if addresses is not None else ["198.51.100.7"])
        self.calls: List[tuple] = []
        self.applied: List[Dict] = []
        self.apply_error: Optional[Exception] = None

    def fetch_credentials(self, cluster_id: str) -> None:
        self.calls.append(("credentials", cluster_id))

    def apply_descriptor(self, descriptor: Dict) -> None:
        self.calls.append(("apply", descriptor["kind"]))
        if self.apply_error is not None:
            raise self.apply_error
        self.applied.append(descriptor)

    def get_external_address(self, service_object: str) -> Optional[str]:
        self.calls.append(("address", service_object))
        if len(self.addresses) > 1:
            return self.addresses.pop(0)
        return self.addresses[0] if self.addresses else None


def make_collaborators(**overrides) -> Collaborators:  # noqa: ANN003
    parts = dict(
        apis=FakeApis(),
        storage=FakeStorage(existing=["test-project-gke-deployments"]),
        registry=FakeRegistry(existing=["app-repo"]),
        builder=FakeBuilder(),
        clusters=FakeClusters(exists=True),
        cluster_access=FakeClusterAccess(),
    )
    parts.update(overrides)
    return Collaborators(**parts)


def make_config(**overrides) -> DeployConfig:  # noqa: ANN003
    values = dict(
        gcp_project_id="test-project",
        gcp_region="us-central1",
        gke_cluster="default-cluster",
        service_name="app",
        poll_interval=0.01,
        poll_max_interval=0.02,
        api_enable_timeout=1.0,
        repository_timeout=1.0,
        build_timeout=1.0,
        endpoint_timeout=1.0,
    )
    values.update(overrides)
    return DeployConfig(**values)


def make_request(**overrides) -> DeploymentRequest:  # noqa: ANN003
    values = dict(
        project_id="test-project",
        region="us-central1",
        cluster_id="default-cluster",
        service_name="app",
        files=[
            SourceFile.inline("Dockerfile", "FROM python:3.12-slim\n"),
            SourceFile.inline("main.py", "print('hello')\n"),
        ],
    )
    values.update(overrides)
    return DeploymentRequest(**values)


@pytest.fixture
def collab() -> Collaborators:
    return make_collaborators()


@pytest.fixture
def cfg() -> DeployConfig:
    return make_config()


@pytest.fixture
def request_() -> DeploymentRequest:
    return make_request()
