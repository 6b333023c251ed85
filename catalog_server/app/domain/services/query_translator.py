# catalog_server/app/domain/services/query_translator.py
"""
QueryTranslator
===============

QuerySpec(추상 쿼리)을 EngineQuery(엔진 네이티브 쿼리)로 번역한다.

순서:
    기본 속성(쿼리 텍스트/페이징/조회 필드) → 필터 → 패싯 → 통계 → 정렬

- 필터/패싯/통계 절은 서로 독립이며, 절 이름은 QuerySpec의 키를 그대로 쓴다.
- 형식이 잘못된 필터 항목은 건너뛴다. (번역은 어떤 QuerySpec에 대해서도 실패하지 않음)

예시:
    spec = QuerySpec(page_size=10).add_filter("brand", Field(name="brand", value="Acme"))
    QueryTranslator(FieldCodec()).translate(spec).filter_queries
    # {"brand": "brand_s:Acme"}
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from catalog_server.app.domain.field_codec import FieldCodec
from catalog_server.app.domain.models import (
    FIELD,
    MATCH_ALL,
    NEGATIVE,
    EngineQuery,
    Field,
    FieldType,
    QuerySpec,
    Response,
)
from catalog_server.app.platform.exceptions import InvalidFieldValue, MalformedFilterSpec

if TYPE_CHECKING:
    from catalog_server.app.domain.services.catalog_client import CatalogClient

logger = logging.getLogger(__name__)

NEGATION_MARKER = "-"

# Lucene query_string 예약 문자(공백 포함)
_RESERVED = re.compile(r"[\s+\-=&|><!(){}\[\]^\"~*?:\\/]")
_RANGE = re.compile(r"^[\[{]\S+ TO \S+[\]}]$")


class QueryTranslator:

    def __init__(self, codec: FieldCodec | None = None) -> None:
        self._codec = codec or FieldCodec()

    # ================= public API =================
    def translate(self, spec: QuerySpec) -> EngineQuery:
        """
        QuerySpec을 EngineQuery로 번역한다.
        Args:
            spec: QuerySpec      : 추상 쿼리 명세
        Returns:
            EngineQuery: 엔진 네이티브 쿼리
        """
        query = EngineQuery(
            query=spec.query_text or MATCH_ALL,
            start=spec.page_start,
            rows=spec.page_size,
            fields=self._prepare_fields(spec.fields),
        )
        self._add_filters(query, spec.filters)
        self._add_facets(query, spec.facets)
        self._add_stats(query, spec.stats)
        self._add_sorts(query, spec)

        logger.debug(
            "query.translate: q=%s filters=%d facets=%d stats=%d",
            query.query, len(query.filter_queries), len(query.facet_queries), len(query.stats_fields),
        )
        return query

    def prepare_filter_query(self, field: Field, negative: bool = False) -> str:
        clause = f"{self._codec.encode_field_name(field)}:{self.format_value(field.value, field.type, field.name)}"
        return f"{NEGATION_MARKER}{clause}" if negative else clause

    def prepare_facet_query(self, field: Field) -> str:
        return f"{self._codec.encode_field_name(field)}: {self.format_value(field.value, field.type, field.name)}"

    #================= internal helpers =================
    def _prepare_fields(self, fields: list[Field]) -> list[str]:
        return [self._codec.encode_field_name(f) for f in fields]

    def _add_filters(self, query: EngineQuery, filters: Mapping[str, Any]) -> None:
        for key, entry in filters.items():
            try:
                field, negative = self._unpack_filter(key, entry)
            except MalformedFilterSpec as e:
                logger.warning("query.filter skipped: %s", e)
                continue
            query.filter_queries[key] = self.prepare_filter_query(field, negative)

    def _unpack_filter(self, key: str, entry: Any) -> tuple[Field, bool]:
        """
        필터 항목에서 (Field, negative)를 꺼낸다.
        JSON으로 들어온 dict 형태의 field도 허용한다.
        Raises:
            MalformedFilterSpec: field/negative 누락 또는 잘못된 field
        """
        if not isinstance(entry, Mapping):
            raise MalformedFilterSpec(key, "entry is not a mapping")
        if entry.get(FIELD) is None or entry.get(NEGATIVE) is None:
            raise MalformedFilterSpec(key, f"'{FIELD}' and '{NEGATIVE}' are required")

        field = entry[FIELD]
        if not isinstance(field, Field):
            try:
                field = Field.model_validate(field)
            except ValidationError as e:
                raise MalformedFilterSpec(key, f"invalid field: {e.error_count()} error(s)") from e
        return field, bool(entry[NEGATIVE])

    def _add_facets(self, query: EngineQuery, facets: Mapping[str, Field]) -> None:
        for key, field in facets.items():
            query.facet_queries[key] = self.prepare_facet_query(field)

    def _add_stats(self, query: EngineQuery, stats: Mapping[str, Field]) -> None:
        for key, field in stats.items():
            query.stats_fields[key] = self._codec.encode_field_name(field)

    def _add_sorts(self, query: EngineQuery, spec: QuerySpec) -> None:
        sorts: dict[str, str] = {}
        for clause in spec.sort_by:
            sorts[self._codec.encode_field_name(clause.field)] = clause.direction
        sorts.update(spec.sort)
        if sorts:
            query.sorts = sorts

    def format_value(self, value: Any, field_type: str | None = None, field_name: str = "value") -> str:
        """
        필드 값을 query_string 절의 값으로 렌더링한다.
        - bool: true/false
        - 리스트: (a OR b)
        - datetime 타입: 엔진 타임스탬프로 정규화 후 따옴표
        - 범위 문법([a TO b], {a TO b})과 단독 '*'는 그대로 둔다.
        - 예약 문자/공백이 있는 문자열은 따옴표로 감싼다.
        Raises:
            InvalidFieldValue: datetime 타입인데 날짜로 해석할 수 없는 값
        """
        if isinstance(value, (list, tuple, set)):
            return "(" + " OR ".join(self.format_value(v, field_type, field_name) for v in value) + ")"
        if isinstance(value, bool):
            return "true" if value else "false"
        text = str(value)
        if text == "*" or _RANGE.match(text):
            return text
        if field_type == FieldType.datetime.value:
            try:
                return _quote(self._codec.to_engine_datetime(value))
            except ValueError as e:
                raise InvalidFieldValue(field_name, value, str(e)) from e
        if isinstance(value, (int, float)) or not _RESERVED.search(text):
            return text
        return _quote(text)


def _quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


class CatalogQuery:
    """
    QueryTranslator 기반 쿼리 객체.
    spec을 채운 뒤 build_query()/get_response()로 실행한다.
    """

    def __init__(self, client: "CatalogClient", translator: QueryTranslator, spec: QuerySpec | None = None) -> None:
        self.spec = spec or QuerySpec()
        self._client = client
        self._translator = translator

    def build_query(self) -> EngineQuery:
        return self._translator.translate(self.spec)

    def get_response(self) -> Response:
        return self._client.query(self.build_query())
