import pytest

from gke_deploy.config import DeployConfig, load_env_files
from gke_deploy.gcp_project import REQUIRED_APIS_BASE


_ALL_KEYS = [
    "GCP_PROJECT_ID",
    "GCP_REGION",
    "GKE_CLUSTER",
    "SERVICE_NAME",
    "REQUIRED_APIS",
    "BUILD_TIMEOUT_SECONDS",
    "POLL_INTERVAL_SECONDS",
    "CHECK_CLUSTER_FIRST",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ALL_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_missing_required_env_raises_value_error() -> None:
    with pytest.raises(ValueError) as excinfo:
        DeployConfig.from_env()

    assert "GCP_PROJECT_ID" in str(excinfo.value)


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GCP_PROJECT_ID", "test-project")

    cfg = DeployConfig.from_env()

    assert cfg.gcp_region == "europe-west1"
    assert cfg.gke_cluster == "default-cluster"
    assert cfg.service_name == "app"
    assert cfg.required_apis == REQUIRED_APIS_BASE
    assert cfg.check_cluster_first is False
    assert cfg.bucket_name() == "test-project-gke-deployments"


def test_project_argument_overrides_env() -> None:
    cfg = DeployConfig.from_env(project_id="other-project")

    assert cfg.gcp_project_id == "other-project"


def test_overrides_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GCP_PROJECT_ID", "test-project")
    monkeypatch.setenv("REQUIRED_APIS", "container.googleapis.com, cloudbuild.googleapis.com")
    monkeypatch.setenv("BUILD_TIMEOUT_SECONDS", "60")
    monkeypatch.setenv("CHECK_CLUSTER_FIRST", "true")

    cfg = DeployConfig.from_env()

    assert cfg.required_apis == ["container.googleapis.com", "cloudbuild.googleapis.com"]
    assert cfg.build_timeout == 60.0
    assert cfg.check_cluster_first is True


def test_invalid_number_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GCP_PROJECT_ID", "test-project")
    monkeypatch.setenv("POLL_INTERVAL_SECONDS", "soon")

    with pytest.raises(ValueError) as excinfo:
        DeployConfig.from_env()

    assert "POLL_INTERVAL_SECONDS" in str(excinfo.value)


def test_later_env_file_wins(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    # load_dotenv 가 os.environ 을 직접 바꾸므로, 테스트 후 원복되도록 먼저 등록해 둔다.
    monkeypatch.setenv("GCP_PROJECT_ID", "placeholder")
    monkeypatch.setenv("GKE_CLUSTER", "placeholder")
    (tmp_path / ".env").write_text("GCP_PROJECT_ID=from-env\nGKE_CLUSTER=c1\n")
    (tmp_path / ".env.infra").write_text("GKE_CLUSTER=c2\n")

    load_env_files(str(tmp_path))
    cfg = DeployConfig.from_env()

    assert cfg.gcp_project_id == "from-env"
    assert cfg.gke_cluster == "c2"
