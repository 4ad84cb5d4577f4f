"""
gcp_project
-----------

프로젝트의 API(서비스) 활성화 상태 조회와 enable 을 담당하는 모듈.
"""

from __future__ import annotations

import enum

from google.cloud import service_usage_v1

from .errors import from_google_error
from .gcp_context import GcpContext
from .logging_utils import get_logger
from .poller import GoogleOperation


logger = get_logger(__name__)


REQUIRED_APIS_BASE = [
    "iam.googleapis.com",
    "storage.googleapis.com",
    "cloudbuild.googleapis.com",
    "artifactregistry.googleapis.com",
    "container.googleapis.com",
]


class ApiState(str, enum.Enum):
    ENABLED = "ENABLED"
    DISABLED = "DISABLED"


class ServiceUsageApis:
    def __init__(self, ctx: GcpContext) -> None:
        self._ctx = ctx

    def _service_name(self, api: str) -> str:
        return f"projects/{self._ctx.project_id}/services/{api}"

    def get_state(self, api: str) -> ApiState:
        name = self._service_name(api)
        logger.debug("API 상태 조회: %s", name)
        try:
            service = self._ctx.service_usage.get_service(request={"name": name})
        except Exception as e:  # noqa: BLE001
            raise from_google_error(e, f"API [{api}] 상태를 조회할 수 없습니다") from e

        if service.state == service_usage_v1.State.ENABLED:
            return ApiState.ENABLED
        return ApiState.DISABLED

    def enable(self, api: str) -> GoogleOperation:
        name = self._service_name(api)
        logger.info("API 활성화 요청: %s", name)
        try:
            operation = self._ctx.service_usage.enable_service(request={"name": name})
        except Exception as e:  # noqa: BLE001
            raise from_google_error(e, f"API [{api}] 활성화 요청 실패") from e
        return GoogleOperation(operation, description=f"API [{api}] 활성화")
