import pytest

from gke_deploy.errors import ValidationError
from gke_deploy.models import SourceFile

from conftest import make_request


def test_valid_request_passes() -> None:
    make_request().validate()


@pytest.mark.parametrize("name", ["", "App", "1app", "app-", "my_app", "a" * 56])
def test_service_name_must_be_dns_label(name: str) -> None:
    with pytest.raises(ValidationError) as excinfo:
        make_request(service_name=name).validate()

    assert "service_name" in str(excinfo.value)


def test_empty_file_list_is_rejected() -> None:
    with pytest.raises(ValidationError):
        make_request(files=[]).validate()


def test_blank_cluster_is_rejected() -> None:
    with pytest.raises(ValidationError) as excinfo:
        make_request(cluster_id=" ").validate()

    assert "cluster_id" in str(excinfo.value)


@pytest.mark.parametrize("name", ["/etc/passwd", "../outside.py", "..", ".", "a/../../b"])
def test_inline_names_must_stay_relative(name: str) -> None:
    with pytest.raises(ValidationError):
        make_request(files=[SourceFile.inline(name, "x")]).validate()


def test_inline_str_content_is_encoded() -> None:
    f = SourceFile.inline("main.py", "print('안녕')")

    assert f.content == "print('안녕')".encode("utf-8")
    assert f.is_inline
    assert f.describe() == "<inline:main.py>"


@pytest.mark.parametrize("name", ["..env.example", "...hidden", "conf/..local"])
def test_inline_names_starting_with_dots_are_allowed(name: str) -> None:
    make_request(files=[SourceFile.inline(name, "x")]).validate()


def test_missing_file_list_is_validation_error() -> None:
    with pytest.raises(ValidationError) as excinfo:
        make_request(files=None).validate()

    assert "배포할 파일이 없습니다" in str(excinfo.value)
