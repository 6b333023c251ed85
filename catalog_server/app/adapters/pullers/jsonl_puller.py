"""
JSON lines 파일에서 Document를 한 줄씩 읽어 내보내는 DocumentSource 구현체.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Iterator

from pydantic import ValidationError

from catalog_server.app.domain.ports import DocumentSource
from catalog_server.app.domain.models import Document
from catalog_server.app.platform.exceptions import PermissionDenied, ResourceNotFound

logger = logging.getLogger(__name__)


class JsonlPuller(DocumentSource):
    """
    - 파일 전체를 메모리에 올리지 않고 순회 시점에 한 줄씩 읽는다.
    - 빈 줄은 무시하고, 해석할 수 없는 줄은 건너뛴 뒤 invalid_lines에 센다.
    - base_dir가 주어지면 그 디렉토리 밖의 파일은 읽지 않는다.
    """

    def __init__(
        self,
        uri: str,
        encoding: str = "utf-8",
        on_invalid: Callable[[int, str], Any] | None = None,
        base_dir: str | Path | None = None) -> None:
        self.base_dir = Path(base_dir).expanduser().resolve() if base_dir is not None else None
        self.path = self._convert_uri_to_path(uri)
        self.encoding = encoding
        self.on_invalid = on_invalid
        self.invalid_lines = 0

    def __iter__(self) -> Iterator[Document]:
        """
        Returns:
            Iterator[Document]: 파일 순서대로의 문서 스트림
        Raises:
            ResourceNotFound: 파일이 없음
            PermissionDenied: 읽기 권한이 없음
        """
        try:
            f = open(self.path, "r", encoding=self.encoding)
        except FileNotFoundError as e:
            raise ResourceNotFound(str(self.path), f"Resource not found: {self.path}") from e
        except PermissionError as e:
            raise PermissionDenied(str(self.path), f"permission denied: {self.path} error={e}") from e

        with f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    document = Document.model_validate(json.loads(line))
                except (json.JSONDecodeError, ValidationError) as e:
                    self.invalid_lines += 1
                    logger.warning("puller.skip line=%d path=%s error=%s", line_no, self.path, e)
                    if self.on_invalid is not None:
                        self.on_invalid(line_no, str(e))
                    continue
                yield document

    def _convert_uri_to_path(self, uri: str) -> Path:
        """
        file:// prefix가 있거나 상대 경로인 경우 절대 경로로 변환한다.
        base_dir가 있으면 상대 경로는 base_dir 기준이다.

        Args:
            uri: 'file:///abs/docs.jsonl' 또는 'docs.jsonl'
        Returns:
            Path: 절대 경로
        Raises:
            PermissionDenied: base_dir 밖의 경로
        """
        path_str = uri
        if uri.startswith("file://"):
            path_str = uri.replace("file://", "", 1)
        path = Path(path_str).expanduser()
        if self.base_dir is None:
            return path.resolve()

        path = (self.base_dir / path).resolve()
        if not path.is_relative_to(self.base_dir):
            raise PermissionDenied(str(path), f"path is outside of {self.base_dir}: {path}")
        return path
