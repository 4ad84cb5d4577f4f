"""
packager
--------

배포할 소스 파일들을 하나의 zip 아카이브로 묶는다.

- 로컬 경로(파일/디렉토리)와 인라인(name, content) 입력을 똑같이 다룬다.
- 읽을 수 없는 경로가 있으면 건너뛰지 않고 ValidationError 를 올린다.
- 같은 입력(순서/내용)이면 항상 같은 바이트가 나오도록 타임스탬프를 고정한다.
"""

from __future__ import annotations

import io
import os
import posixpath
import zipfile
from typing import Iterable, Iterator, List, Sequence, Tuple

from .errors import ValidationError
from .logging_utils import get_logger
from .models import SourceFile


logger = get_logger(__name__)

# zip 이 표현할 수 있는 가장 이른 시각
_FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)
_FILE_MODE = 0o644 << 16

BUILD_DEFINITION_FILE = "dockerfile"


def _read_path(path: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise ValidationError(f"파일을 읽을 수 없습니다: {path}", detail=str(e)) from e


def _walk_dir(root: str) -> Iterator[Tuple[str, str]]:
    """디렉토리를 정렬된 순서로 돌며 (arcname, 실제 경로) 를 돌려준다."""
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_walk_error):
        dirnames.sort()
        for filename in sorted(filenames):
            full = os.path.join(dirpath, filename)
            rel = os.path.relpath(full, root)
            yield rel.replace(os.sep, "/"), full


def _raise_walk_error(err: OSError) -> None:
    raise ValidationError(f"디렉토리를 읽을 수 없습니다: {err.filename}", detail=str(err)) from err


def _file_base_dir(files: Sequence[SourceFile]) -> str:
    parents = [
        os.path.dirname(os.path.abspath(f.path))
        for f in files
        if not f.is_inline and not os.path.isdir(f.path)
    ]
    if not parents:
        return ""
    return os.path.commonpath(parents)


def iter_entries(files: Sequence[SourceFile]) -> Iterator[Tuple[str, bytes]]:
    """입력 순서대로 (아카이브 내 경로, 내용) 을 돌려준다."""
    base_dir = _file_base_dir(files)

    for f in files:
        if f.is_inline:
            name = posixpath.normpath((f.name or "").replace("\\", "/"))
            yield name, bytes(f.content or b"")
            continue

        path = f.path
        if os.path.isdir(path):
            for arcname, full in _walk_dir(path):
                yield arcname, _read_path(full)
            continue

        if not os.path.exists(path):
            raise ValidationError(f"파일이 존재하지 않습니다: {path}")
        arcname = os.path.relpath(os.path.abspath(path), base_dir).replace(os.sep, "/")
        yield arcname, _read_path(path)


class ArtifactPackager:
    def package(self, files: Sequence[SourceFile]) -> bytes:
        if not files:
            raise ValidationError("패키징할 파일이 없습니다")

        buf = io.BytesIO()
        seen: set[str] = set()
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for arcname, content in iter_entries(files):
                if arcname in seen:
                    raise ValidationError(f"아카이브 안에서 파일 경로가 중복됩니다: {arcname}")
                seen.add(arcname)

                info = zipfile.ZipInfo(arcname, date_time=_FIXED_DATE_TIME)
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = _FILE_MODE
                zf.writestr(info, content)
                logger.debug("아카이브에 추가: %s (%d bytes)", arcname, len(content))

        if not seen:
            raise ValidationError("패키징할 파일이 없습니다 (빈 디렉토리)")

        data = buf.getvalue()
        logger.info("소스 아카이브 생성: 파일 %d개, %d bytes", len(seen), len(data))
        return data


def archive_names(data: bytes) -> List[str]:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return zf.namelist()


def has_build_definition(names: Iterable[str]) -> bool:
    """
    아카이브 루트에 Dockerfile 이 있는지 (대소문자 무시).

    빌드 컨텍스트가 아카이브 루트이므로 하위 디렉토리의 Dockerfile 은 보지 않는다.
    """
    return any(name.lower() == BUILD_DEFINITION_FILE for name in names)
