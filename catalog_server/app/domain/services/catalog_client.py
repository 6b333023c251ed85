# catalog_server/app/domain/services/catalog_client.py
"""
CatalogClient
=============

번역 계층(FieldCodec/QueryTranslator/ResponseTranslator)과 색인 파이프라인(Pusher)을
엔진 전송 객체와 묶어 호출 코드에 제공하는 파사드.

- 엔진 통신 실패(TransportError)는 예외 대신 실패 Response로 돌려준다.
- 전송 객체와 타임아웃 설정은 이 클라이언트가 소유하고, 생성하는 객체에 참조로 넘긴다.

예시:
    client = CatalogClient(get_settings(), OpenSearchTransport(os_client, "catalog"))
    q = client.get_query()
    q.spec.add_filter("brand", client.get_field("brand", "Acme"))
    response = q.get_response()
"""

from __future__ import annotations

import logging
from typing import Any

from catalog_server.app.domain.field_codec import FieldCodec
from catalog_server.app.domain.models import (
    Document,
    EngineQuery,
    Field,
    QuerySpec,
    RawResult,
    Response,
    UpdateBatch,
)
from catalog_server.app.domain.ports import TransportPort
from catalog_server.app.domain.services.pusher import BatchCallback, Pusher
from catalog_server.app.domain.services.query_translator import CatalogQuery, QueryTranslator
from catalog_server.app.domain.services.response_translator import ResponseTranslator
from catalog_server.app.platform.config import Settings
from catalog_server.app.platform.exceptions import InvalidInput, TransportError

logger = logging.getLogger(__name__)


class CatalogClient:

    def __init__(
        self,
        settings: Settings,
        transport: TransportPort,
        codec: FieldCodec | None = None,
    ) -> None:
        self._settings = settings
        self._base_transport = transport
        self._transport = transport.with_timeout(settings.QUERY_TIMEOUT)
        self._codec = codec or FieldCodec()
        self._query_translator = QueryTranslator(self._codec)
        self._response_translator = ResponseTranslator(self._codec)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def codec(self) -> FieldCodec:
        return self._codec

    # ================= update =================
    def add(self, document: Document) -> Response:
        """
        문서 1건을 색인하고 커밋한다.
        Raises:
            InvalidInput: unique_id 누락
            FieldCodecError: 필드 변환 실패
        """
        if not document.unique_id:
            raise InvalidInput("document.unique_id is required")
        record = self._codec.encode_document(document)
        batch = UpdateBatch().add_document(record, doc_id=document.unique_id).add_commit()
        return self._update(batch, "add")

    def delete_by_id(self, doc_id: str) -> Response:
        batch = UpdateBatch().add_delete_by_id(doc_id).add_commit()
        return self._update(batch, "delete_by_id")

    def delete_by_ids(self, doc_ids: list[str]) -> Response:
        batch = UpdateBatch().add_delete_by_ids(doc_ids).add_commit()
        return self._update(batch, "delete_by_ids")

    def delete_by_field(self, field: Field | str, value: Any = None) -> Response:
        """
        필드 조건에 맞는 문서를 삭제한다.
        Field가 주어지면 인코딩된 이름을 쓰고, value가 없으면 field.value를 쓴다.
        """
        field_type = None
        if isinstance(field, Field):
            name = self._codec.encode_field_name(field)
            field_type = field.type
            value = field.value if value is None else value
        else:
            name = field
        if value is None:
            raise InvalidInput("delete_by_field requires a value")
        formatted = self._query_translator.format_value(value, field_type, name)
        batch = UpdateBatch().add_delete_query(f"{name}:{formatted}").add_commit()
        return self._update(batch, "delete_by_field")

    # ================= query =================
    def get(self, options: dict[str, Any]) -> Response:
        """
        원본 통과 조회(스키마/디버그용). 문서 배열을 가공하지 않는다.
        Args:
            options: dict  : 엔진 원본 요청 바디
        """
        try:
            raw = self._transport.execute(options)
        except TransportError as e:
            return self._failed("get", e)
        return self._response_translator.translate_raw(raw)

    def query(self, query: QuerySpec | EngineQuery) -> Response:
        """
        전체 쿼리 경로: 번역 → 실행 → 문서/패싯/통계/페이지 복원.
        Raises:
            InvalidInput: QuerySpec/EngineQuery가 아닌 입력
        """
        if isinstance(query, QuerySpec):
            query = self._query_translator.translate(query)
        if not isinstance(query, EngineQuery):
            raise InvalidInput("query must be a QuerySpec or EngineQuery")

        try:
            raw: RawResult = self._transport.execute(query)
        except TransportError as e:
            response = self._failed("query", e)
            response.query = query
            return response
        if raw.query is None:
            raw = raw.model_copy(update={"query": query})
        return self._response_translator.translate(raw)

    # ================= factories =================
    def get_query(self, spec: QuerySpec | None = None) -> CatalogQuery:
        return CatalogQuery(self, self._query_translator, spec)

    def get_pusher(self, on_batch: BatchCallback | None = None) -> Pusher:
        return Pusher(self._settings, self._base_transport, codec=self._codec, on_batch=on_batch)

    def get_field(
        self,
        name: str,
        value: Any = None,
        type: str = "string",
        indexable: bool = False,
        multi_valued: bool = False,
        args: dict[str, Any] | None = None,
    ) -> Field:
        return Field(
            name=name, value=value, type=type,
            indexable=indexable, multi_valued=multi_valued, args=args or {},
        )

    def ensure_index(self) -> bool:
        """인덱스가 없으면 스키마로 생성한다. (전송 객체가 지원하는 경우)"""
        ensure = getattr(self._base_transport, "ensure_index", None)
        if ensure is None:
            return False
        return ensure()

    #================= internal helpers =================
    def _update(self, batch: UpdateBatch, action: str) -> Response:
        try:
            raw = self._transport.update(batch)
        except TransportError as e:
            return self._failed(action, e)
        logger.info("client.%s: status=%s", action, raw.status_code)
        return self._response_translator.translate_update(raw)

    @staticmethod
    def _failed(action: str, e: TransportError) -> Response:
        logger.error("client.%s failed: %s", action, e)
        return Response(status_code=e.status_code, status_message=str(e), error=str(e))
