"""
OpenSearch를 엔진으로 사용하는 TransportPort 구현체
"""

from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Dict, List
from opensearchpy import OpenSearch, helpers
from opensearchpy.exceptions import OpenSearchException
from opensearchpy.exceptions import TransportError as OpenSearchTransportError
from catalog_server.app.domain.ports import TransportPort
from catalog_server.app.domain.models import (
    EngineQuery, IndexErrorItem, RawResult, UpdateBatch, UpdateOperation
)
from catalog_server.app.platform.exceptions import TransportError

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[3] / "resources/schema/catalog_index.json"


class OpenSearchTransport(TransportPort):

    def __init__(
        self,
        client: OpenSearch,
        index_name: str,
        timeout_ms: int | None = None,
        schema_path: Path = SCHEMA_PATH) -> None:
        self.client = client
        self.index_name = index_name
        self.timeout_ms = timeout_ms
        self.schema_path = schema_path

    def with_timeout(self, timeout_ms: int) -> "OpenSearchTransport":
        """
            같은 OpenSearch 클라이언트를 공유하고 요청 타임아웃만 바꾼 전송 객체를 만든다.
        """
        return OpenSearchTransport(self.client, self.index_name, timeout_ms, self.schema_path)

    def _request_kwargs(self) -> Dict[str, Any]:
        if not self.timeout_ms:
            return {}
        return {"request_timeout": self.timeout_ms / 1000}

    # ================== index ==================
    def _load_index_schema(self) -> Dict[str, Any]:
        """
            인덱스 스키마(동적 필드 규칙 포함)를 JSON 파일에서 로드한다.
        """
        with open(self.schema_path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def ensure_index(self) -> bool:
        """
            인덱스가 없으면 스키마로 생성한다.

            Returns:
                bool: 새로 생성했는지 여부
        """
        try:
            if self.client.indices.exists(index=self.index_name):
                logger.info("Index '%s' already exists.", self.index_name)
                return False
            self.client.indices.create(index=self.index_name, body=self._load_index_schema())
        except OpenSearchException as e:
            raise self._to_transport_error(e) from e
        logger.info("Index '%s' created successfully.", self.index_name)
        return True

    # ================== query ==================
    def execute(self, query: EngineQuery | Dict[str, Any]) -> RawResult:
        """
            검색을 수행한다.

            Args:
                query: EngineQuery(번역된 쿼리) 또는 원본 요청 바디
            Returns:
                RawResult: 검색 결과 원본(hits, aggregations 등)
        """
        if isinstance(query, EngineQuery):
            body, echoed = query.to_body(), query
        else:
            body, echoed = dict(query or {}), None
        try:
            data = self.client.search(index=self.index_name, body=body, **self._request_kwargs())
        except OpenSearchException as e:
            raise self._to_transport_error(e) from e
        return RawResult(data=data, query=echoed)

    # ================== update ==================
    def update(self, batch: UpdateBatch) -> RawResult:
        """
            배치의 작업을 순서대로 적용한다.

            - 연속된 add/delete_id는 한 번의 bulk 요청으로 묶는다.
            - delete_query는 delete_by_query, commit은 refresh로 처리한다.
            - bulk 항목 단위 실패는 예외 대신 RawResult.errors로 보고한다.

            Args:
                batch: UpdateBatch
            Returns:
                RawResult: 상태 및 항목 단위 실패
        """
        errors: List[IndexErrorItem] = []
        pending: List[Dict[str, Any]] = []
        data: Dict[str, Any] = {}
        try:
            for op in batch.operations:
                if op.op in ("add", "delete_id"):
                    pending.append(self._to_action(op))
                    continue
                errors.extend(self._flush(pending))
                pending = []
                if op.op == "delete_query":
                    data = self.client.delete_by_query(
                        index=self.index_name,
                        body={"query": {"query_string": {"query": op.query}}},
                        **self._request_kwargs(),
                    )
                elif op.op == "commit":
                    self.client.indices.refresh(index=self.index_name, **self._request_kwargs())
            errors.extend(self._flush(pending))
        except OpenSearchException as e:
            raise self._to_transport_error(e) from e

        if errors:
            return RawResult(
                data=data,
                status_code=207,
                status_message=f"{len(errors)} item(s) failed",
                errors=errors)
        return RawResult(data=data)

    def _to_action(self, op: UpdateOperation) -> Dict[str, Any]:
        if op.op == "add":
            return {
                "_op_type": "index",
                "_index": self.index_name,
                "_id": op.doc_id,
                "_source": op.document,
            }
        return {
            "_op_type": "delete",
            "_index": self.index_name,
            "_id": op.doc_id,
        }

    def _flush(self, actions: List[Dict[str, Any]]) -> List[IndexErrorItem]:
        if not actions:
            return []
        ok, errors = helpers.bulk(
            self.client, actions, raise_on_error=False, **self._request_kwargs())
        logger.debug("bulk flushed: ok=%s errors=%d", ok, len(errors or []))
        err_items: List[IndexErrorItem] = []
        for e in errors or []:
            op_type, item = next(iter(e.items()), (None, {})) if isinstance(e, dict) else (None, {})
            # 없는 문서 삭제(404)는 실패로 보지 않는다.
            if op_type == "delete" and item.get("status") == 404:
                continue
            err_items.append(IndexErrorItem(
                doc_id=str(item.get("_id", "")),
                reason=str(item.get("error", e))))
        return err_items

    @staticmethod
    def _to_transport_error(e: OpenSearchException) -> TransportError:
        status = getattr(e, "status_code", None) if isinstance(e, OpenSearchTransportError) else None
        if not isinstance(status, int):
            # 연결 실패 등 HTTP 상태가 없는 경우
            status = 503
        return TransportError(f"OpenSearch request failed: {e}", status_code=status)
