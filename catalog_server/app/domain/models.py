"""
도메인 모델 정의.

- Field/Document: 카탈로그 측 추상 문서 모델(타입이 있는 필드들의 묶음)
- QuerySpec: 검색엔진에 독립적인 추상 쿼리(텍스트/필터/패싯/통계/페이징/정렬)
- EngineQuery: QuerySpec을 번역한 엔진 네이티브 쿼리(OpenSearch DSL로 렌더링)
- UpdateBatch: 한 번의 update 호출로 전송되는 변경 작업 묶음
- RawResult/Response: 엔진 원본 결과와 이를 복원한 추상 응답
- PushResult/SkipReport/BatchEvent: 배치 색인 실행 결과와 관측 이벤트

Pydantic v2 기반 모델이라 검증/직렬화가 용이합니다.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal
from pydantic import BaseModel, ConfigDict, computed_field, field_validator
from pydantic import Field as PydanticField


JSONDict = dict[str, Any]

# 쿼리 텍스트 미지정 시 사용하는 전체 매칭 쿼리
MATCH_ALL = "*:*"

# QuerySpec.filters 항목의 키
FIELD = "field"
NEGATIVE = "negative"

# EngineQuery → OpenSearch aggregation 이름
FACET_AGG_NAME = "facet_queries"
STATS_AGG_PREFIX = "stats__"


class FieldType(str, Enum):
    """추상 필드 타입."""
    string = "string"
    text = "text"
    int = "int"
    long = "long"
    float = "float"
    double = "double"
    boolean = "boolean"
    datetime = "datetime"


class Field(BaseModel):
    """
    타입이 있는 불변 필드.
    type은 생성 시 고정되며, multi_valued면 엔진에 시퀀스로 저장된다.
    """
    model_config = ConfigDict(frozen=True)

    name: str = PydanticField(..., min_length=1, description="필드 이름")
    value: Any = PydanticField(None, description="필드 값")
    type: str = PydanticField(FieldType.string.value, description="필드 타입(FieldType 값)")
    indexable: bool = PydanticField(False, description="색인 대상 여부")
    multi_valued: bool = PydanticField(False, description="다중값 여부")
    args: JSONDict = PydanticField(default_factory=dict, description="부가 인자")

    @field_validator("type", mode="before")
    @classmethod
    def _type_value(cls, v: Any) -> Any:
        if isinstance(v, Enum):
            return v.value
        return v


class Document(BaseModel):
    """
    카탈로그 문서 1건.
    - unique_id: 엔진 기본키(비어 있으면 색인하지 않음)
    - object_id/object_type: 카탈로그 도메인 식별자(엔진 문서마다 복사)
    """
    unique_id: str = PydanticField("", description="엔진 기본키")
    object_id: int = PydanticField(0, description="카탈로그 객체 ID(0이면 무효)")
    object_type: str = PydanticField("", description="카탈로그 객체 타입")
    fields: list[Field] = PydanticField(default_factory=list)

    @field_validator("unique_id", mode="before")
    @classmethod
    def _unique_id_str(cls, v: Any) -> Any:
        if v is None:
            return ""
        return str(v)

    @field_validator("object_id", mode="before")
    @classmethod
    def _object_id_int(cls, v: Any) -> int:
        # 숫자로 해석할 수 없는 값은 0(무효)으로 본다.
        if not v:
            return 0
        try:
            return int(v)
        except (TypeError, ValueError):
            return 0

    def set_field(self, field: Field) -> "Document":
        self.fields.append(field)
        return self

    def get_field(self, name: str) -> Field | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None


class SortClause(BaseModel):
    """추상 필드 기준 정렬(엔진 이름은 번역 시 인코딩)."""
    field: Field
    direction: Literal["asc", "desc"] = "asc"


class QuerySpec(BaseModel):
    """
    추상 쿼리 명세.
    호출 코드가 점진적으로 채우고, 실행마다 한 번 번역된다.
    filters 항목 형식: {key: {"field": Field, "negative": bool}}
    정렬은 sort_by(추상 Field, 인코딩됨)가 먼저, sort(엔진 필드 이름 그대로. ex. _score)가 뒤에 붙는다.
    """
    query_text: str | None = PydanticField(None, description="쿼리 텍스트(없으면 전체 매칭)")
    page_start: int = PydanticField(0, ge=0, description="시작 오프셋")
    page_size: int = PydanticField(10, gt=0, description="페이지 크기")
    fields: list[Field] = PydanticField(default_factory=list, description="조회 필드(비면 전체)")
    filters: dict[str, dict[str, Any]] = PydanticField(default_factory=dict)
    facets: dict[str, Field] = PydanticField(default_factory=dict)
    stats: dict[str, Field] = PydanticField(default_factory=dict)
    sort_by: list[SortClause] = PydanticField(default_factory=list, description="추상 필드 정렬")
    sort: dict[str, Literal["asc", "desc"]] = PydanticField(
        default_factory=dict, description="엔진 필드 이름 정렬(ex. price_f, _score)")

    def add_field(self, field: Field) -> "QuerySpec":
        self.fields.append(field)
        return self

    def add_filter(self, key: str, field: Field, negative: bool = False) -> "QuerySpec":
        self.filters[key] = {FIELD: field, NEGATIVE: negative}
        return self

    def add_facet(self, key: str, field: Field) -> "QuerySpec":
        self.facets[key] = field
        return self

    def add_stat(self, key: str, field: Field) -> "QuerySpec":
        self.stats[key] = field
        return self

    def add_sort(self, field: Field | str, direction: Literal["asc", "desc"] = "asc") -> "QuerySpec":
        """Field면 인코딩된 이름으로, 문자열이면 엔진 필드 이름 그대로 정렬한다."""
        if isinstance(field, Field):
            self.sort_by.append(SortClause(field=field, direction=direction))
        else:
            self.sort[field] = direction
        return self


class EngineQuery(BaseModel):
    """
    엔진 네이티브 쿼리.
    절(clause)은 이름(키)으로 관리되며 같은 키는 덮어쓴다.
    """
    query: str = MATCH_ALL
    start: int = 0
    rows: int = 10
    fields: list[str] = PydanticField(default_factory=list)
    filter_queries: dict[str, str] = PydanticField(default_factory=dict)
    facet_queries: dict[str, str] = PydanticField(default_factory=dict)
    stats_fields: dict[str, str] = PydanticField(default_factory=dict)
    sorts: dict[str, str] = PydanticField(default_factory=dict)

    def to_body(self) -> JSONDict:
        """
        OpenSearch 검색 바디로 렌더링한다.
        - 쿼리/필터: query_string (Lucene 문법)
        - 패싯: filters aggregation (버킷 이름 = 패싯 키)
        - 통계: 키별 stats aggregation
        Returns:
            JSONDict: 검색 쿼리 바디
        """
        bool_query: JSONDict = {
            "must": [{"query_string": {"query": self.query}}],
        }
        if self.filter_queries:
            bool_query["filter"] = [
                {"query_string": {"query": fq}} for fq in self.filter_queries.values()
            ]

        body: JSONDict = {
            "from": self.start,
            "size": self.rows,
            "track_total_hits": True,
            "query": {"bool": bool_query},
        }
        if self.fields:
            body["_source"] = list(self.fields)

        aggs: JSONDict = {}
        if self.facet_queries:
            aggs[FACET_AGG_NAME] = {
                "filters": {
                    "filters": {
                        key: {"query_string": {"query": q}}
                        for key, q in self.facet_queries.items()
                    }
                }
            }
        for key, field_name in self.stats_fields.items():
            aggs[f"{STATS_AGG_PREFIX}{key}"] = {"stats": {"field": field_name}}
        if aggs:
            body["aggs"] = aggs

        if self.sorts:
            body["sort"] = [{name: {"order": order}} for name, order in self.sorts.items()]
        return body


class UpdateOperation(BaseModel):
    op: Literal["add", "delete_id", "delete_query", "commit"]
    doc_id: str | None = None
    document: JSONDict | None = None
    query: str | None = None


class UpdateBatch(BaseModel):
    """엔진에 순서대로 적용되는 변경 작업 묶음."""
    operations: list[UpdateOperation] = PydanticField(default_factory=list)

    def add_document(self, document: JSONDict, doc_id: str) -> "UpdateBatch":
        self.operations.append(UpdateOperation(op="add", doc_id=doc_id, document=document))
        return self

    def add_delete_by_id(self, doc_id: str) -> "UpdateBatch":
        self.operations.append(UpdateOperation(op="delete_id", doc_id=str(doc_id)))
        return self

    def add_delete_by_ids(self, doc_ids: list[str]) -> "UpdateBatch":
        for doc_id in doc_ids:
            self.add_delete_by_id(doc_id)
        return self

    def add_delete_query(self, query: str) -> "UpdateBatch":
        self.operations.append(UpdateOperation(op="delete_query", query=query))
        return self

    def add_commit(self) -> "UpdateBatch":
        self.operations.append(UpdateOperation(op="commit"))
        return self

    @property
    def documents(self) -> list[JSONDict]:
        return [o.document for o in self.operations if o.op == "add"]

    @property
    def has_commit(self) -> bool:
        return any(o.op == "commit" for o in self.operations)


class IndexErrorItem(BaseModel):
    """엔진이 보고한 항목 단위 실패."""
    doc_id: str
    batch_index: int = 0
    reason: str


class RawResult(BaseModel):
    """엔진 원본 결과(전송 계층 상태 포함)."""
    data: JSONDict = PydanticField(default_factory=dict)
    status_code: int = 200
    status_message: str = "OK"
    query: EngineQuery | None = None
    errors: list[IndexErrorItem] = PydanticField(default_factory=list)


class Response(BaseModel):
    """
    호출 1회의 결과.
    error가 채워져 있으면 엔진 통신이 실패한 응답이다.
    """
    documents: list[Document | JSONDict] = PydanticField(default_factory=list)
    num_found: int = 0
    facets: dict[str, int] | None = None
    stats: dict[str, JSONDict] | None = None
    current_page: int = 1
    status_code: int = 0
    status_message: str = ""
    error: str | None = None
    query: EngineQuery | None = None

    @computed_field
    @property
    def success(self) -> bool:
        return self.error is None and 200 <= self.status_code < 300


# ================== 배치 색인 ==================
MISSING_UNIQUE_ID = "missing_unique_id"
INVALID_OBJECT_ID = "invalid_object_id"
ENCODE_ERROR = "encode_error"


class SkippedDocument(BaseModel):
    unique_id: str | None = None
    reason: str


class SkipReport(BaseModel):
    """
    색인에서 제외된 문서 요약.
    count/by_reason은 전체 집계이고, items는 sample_limit 건까지만 보관하는 샘플이다.
    """
    count: int = 0
    by_reason: dict[str, int] = PydanticField(default_factory=dict)
    items: list[SkippedDocument] = PydanticField(default_factory=list)
    sample_limit: int = PydanticField(100, ge=0, exclude=True)

    def add(self, unique_id: str | None, reason: str) -> None:
        self.count += 1
        key = reason.split(":", 1)[0]
        self.by_reason[key] = self.by_reason.get(key, 0) + 1
        if len(self.items) < self.sample_limit:
            self.items.append(SkippedDocument(unique_id=unique_id or None, reason=reason))

    def reasons(self) -> dict[str, int]:
        return dict(self.by_reason)


class BatchEvent(BaseModel):
    """배치 커밋 1회마다 발행되는 관측 이벤트."""
    batch_index: int
    batch_size: int
    elapsed_ms: float
    status_code: int
    documents_committed: int


class PushResult(Response):
    """
    push 실행 전체에 대한 집계 결과.
    상태 코드/메시지는 마지막 커밋 기준이며,
    실패 시 last_committed_id가 재개 지점이 된다.
    """
    batches_committed: int = 0
    documents_committed: int = 0
    last_committed_id: str | None = None
    skipped: SkipReport = PydanticField(default_factory=SkipReport)
    error_count: int = PydanticField(0, description="엔진이 거부한 항목 수(errors는 샘플)")
    errors: list[IndexErrorItem] = PydanticField(default_factory=list)

    @computed_field
    @property
    def failed(self) -> bool:
        return self.error is not None
