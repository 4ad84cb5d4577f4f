"""
gcp_gcs
-------

소스 아카이브를 올릴 GCS 버킷 확인/생성과 업로드를 담당하는 모듈.
"""

from __future__ import annotations

from typing import Optional

from .errors import from_google_error
from .gcp_context import GcpContext
from .logging_utils import get_logger
from .models import ResourceKind, ResourceRef


logger = get_logger(__name__)


def _bucket_ref(name: str) -> ResourceRef:
    return ResourceRef(kind=ResourceKind.BUCKET, name=name, url=f"gs://{name}")


class GcsStorage:
    def __init__(self, ctx: GcpContext) -> None:
        self._ctx = ctx

    def get_bucket(self, name: str) -> Optional[ResourceRef]:
        """버킷이 있으면 ResourceRef, 없으면 None."""
        try:
            bucket = self._ctx.storage.lookup_bucket(name)
        except Exception as e:  # noqa: BLE001
            raise from_google_error(e, f"GCS 버킷을 조회할 수 없습니다: {name}") from e
        if bucket is None:
            return None
        return _bucket_ref(name)

    def create_bucket(self, name: str, region: str) -> ResourceRef:
        client = self._ctx.storage
        bucket = client.bucket(name)
        try:
            client.create_bucket(bucket, location=region)
        except Exception as e:  # noqa: BLE001
            raise from_google_error(e, f"GCS 버킷 생성 실패: {name}") from e
        logger.info("GCS 버킷을 생성했습니다: %s (location=%s)", name, region)
        return _bucket_ref(name)

    def upload(self, bucket: str, key: str, data: bytes) -> None:
        blob = self._ctx.storage.bucket(bucket).blob(key)
        try:
            blob.upload_from_string(data, content_type="application/zip")
        except Exception as e:  # noqa: BLE001
            raise from_google_error(e, f"업로드 실패: gs://{bucket}/{key}") from e
        logger.info("업로드 완료: gs://%s/%s (%d bytes)", bucket, key, len(data))
