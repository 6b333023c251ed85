# catalog_server/app/domain/services/response_translator.py
"""
엔진 원본 결과(RawResult)를 Response로 복원한다.

- 선택 섹션(hits/aggregations 등)이 없으면 실패하지 않고 빈 값/0으로 채운다.
- 결과 문서의 필드 순서는 원본 _source의 순서를 유지한다.
"""

from __future__ import annotations

import logging
from typing import Any

from catalog_server.app.domain.field_codec import (
    FieldCodec, ID_FIELD, KEY_FIELD, TYPE_FIELD
)
from catalog_server.app.domain.models import (
    FACET_AGG_NAME,
    STATS_AGG_PREFIX,
    Document,
    JSONDict,
    RawResult,
    Response,
)

logger = logging.getLogger(__name__)


class ResponseTranslator:

    def __init__(self, codec: FieldCodec | None = None) -> None:
        self._codec = codec or FieldCodec()

    # ================= public API =================
    def translate(self, raw: RawResult) -> Response:
        """
        전체 쿼리 경로: 문서/총건수/패싯/통계/현재 페이지를 복원한다.
        Args:
            raw: RawResult  : 엔진 원본 결과
        Returns:
            Response: 복원된 응답
        """
        data = raw.data or {}
        hits = self._hits(data)
        response = Response(
            documents=[self.to_document(hit) for hit in hits],
            num_found=self._total(data),
            facets=self._facets(data),
            stats=self._stats(data),
            current_page=self._current_page(raw),
            status_code=raw.status_code,
            status_message=raw.status_message,
            query=raw.query,
        )
        logger.debug("response.translate: num_found=%s docs=%d", response.num_found, len(response.documents))
        return response

    def translate_raw(self, raw: RawResult) -> Response:
        """
        원본 통과 경로(get): 문서 배열을 그대로 두고 그 개수를 num_found로 쓴다.
        """
        hits = self._hits(raw.data or {})
        return Response(
            documents=list(hits),
            num_found=len(hits),
            status_code=raw.status_code,
            status_message=raw.status_message,
        )

    def translate_update(self, raw: RawResult) -> Response:
        return Response(status_code=raw.status_code, status_message=raw.status_message)

    def to_document(self, hit: JSONDict) -> Document:
        """결과 문서 1건을 Document로 복원한다."""
        source = hit.get("_source") or {}
        fields = [
            self._codec.decode_response_field(name, value)
            for name, value in source.items()
        ]
        return Document(
            unique_id=source.get(KEY_FIELD) or hit.get("_id") or "",
            object_id=source.get(ID_FIELD),
            object_type=source.get(TYPE_FIELD) or "",
            fields=fields,
        )

    #================= internal helpers =================
    @staticmethod
    def _hits(data: JSONDict) -> list[JSONDict]:
        return (data.get("hits") or {}).get("hits") or []

    @staticmethod
    def _total(data: JSONDict) -> int:
        total: Any = (data.get("hits") or {}).get("total")
        if isinstance(total, dict):
            total = total.get("value")
        return int(total or 0)

    @staticmethod
    def _facets(data: JSONDict) -> dict[str, int] | None:
        buckets = ((data.get("aggregations") or {}).get(FACET_AGG_NAME) or {}).get("buckets")
        if not buckets:
            return None
        return {
            key: int(bucket) if isinstance(bucket, (int, float)) else int((bucket or {}).get("doc_count", 0))
            for key, bucket in buckets.items()
        }

    @staticmethod
    def _stats(data: JSONDict) -> dict[str, JSONDict] | None:
        aggs = data.get("aggregations") or {}
        stats = {
            name[len(STATS_AGG_PREFIX):]: value
            for name, value in aggs.items()
            if name.startswith(STATS_AGG_PREFIX)
        }
        return stats or None

    @staticmethod
    def _current_page(raw: RawResult) -> int:
        # 요청에 실린 시작 오프셋 기준(1부터)
        if raw.query is None or raw.query.rows <= 0:
            return 1
        return raw.query.start // raw.query.rows + 1
