# catalog_server/app/domain/services/pusher.py
"""
Pusher
======

문서 스트림을 크기 제한이 있는 커밋 배치로 엔진에 적재하는 색인 파이프라인.

Flow:
    Idle → Streaming → (BatchFull → Committing → Streaming)* → Draining → Committing → Done

- 입력 시퀀스는 호출 스레드에서 한 번만, 앞으로만 순회한다.
- 메모리에는 배치 1개 분량의 문서만 유지한다.
- 배치는 스트림 순서대로 커밋되며 동시에 두 배치가 전송되지 않는다.
- 엔진 통신 실패 시 이미 커밋된 배치는 유지하고,
  몇 개의 배치/문서가 커밋되었는지와 재개 지점(last_committed_id)을 결과로 보고한다.

예시:
    pusher = Pusher(settings, transport, on_batch=print)
    result = pusher.push(JsonlPuller("products.jsonl"))
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Callable

from catalog_server.app.domain.field_codec import FieldCodec, ID_FIELD
from catalog_server.app.domain.models import (
    ENCODE_ERROR,
    INVALID_OBJECT_ID,
    MATCH_ALL,
    MISSING_UNIQUE_ID,
    BatchEvent,
    PushResult,
    Response,
    SkipReport,
    UpdateBatch,
)
from catalog_server.app.domain.ports import DocumentSource, TransportPort
from catalog_server.app.platform.config import Settings
from catalog_server.app.platform.exceptions import FieldCodecError, TransportError
from catalog_server.app.platform.logging import correlation_id_ctx

logger = logging.getLogger(__name__)

BatchCallback = Callable[[BatchEvent], Any]


class Pusher:
    """배치 커밋 단위로 문서를 색인하는 유스케이스 서비스."""

    def __init__(
        self,
        settings: Settings,
        transport: TransportPort,
        codec: FieldCodec | None = None,
        on_batch: BatchCallback | None = None,
    ) -> None:
        """
        Pusher 초기화.
        Args:
            settings: Settings        : 페이지 크기/타임아웃 설정
            transport: TransportPort  : 엔진 전송 객체(푸셔 타임아웃을 적용해 보관)
            codec: FieldCodec         : 필드 변환기
            on_batch: BatchCallback   : 배치 커밋마다 호출되는 관측 콜백
        """
        self._settings = settings
        self._page_size = settings.PUSHER_PAGE_SIZE
        self._timeout_ms = settings.pusher_timeout_ms
        self._transport = transport.with_timeout(self._timeout_ms)
        self._codec = codec or FieldCodec()
        self._on_batch = on_batch
        self._sample_limit = settings.SKIP_REPORT_SAMPLE_LIMIT

    @property
    def page_size(self) -> int:
        return self._page_size

    # ================= public API =================
    def push(self, documents: DocumentSource) -> PushResult:
        """
        문서 스트림을 배치로 나눠 커밋한다.

        - unique_id가 없는 문서는 건너뛴다. (배치 크기에 포함되지 않음)
        - object_id가 0/없음인 문서는 무효로 보고 건너뛴다.
        - 필드 변환에 실패한 문서는 문서 전체를 건너뛴다.
        - 건너뛴 문서는 result.skipped에 사유와 함께 기록된다.

        Args:
            documents: DocumentSource  : 문서 공급자(한 번만 순회)
        Returns:
            PushResult: 마지막 커밋 기준 상태 + 커밋/스킵 집계
        """
        result = PushResult(
            status_code=200,
            status_message="No documents committed",
            skipped=SkipReport(sample_limit=self._sample_limit),
        )
        token = None
        if correlation_id_ctx.get() == "-":
            token = correlation_id_ctx.set(f"push-{uuid.uuid4().hex[:12]}")
        logger.info("pusher.push start: page_size=%d timeout_ms=%d", self._page_size, self._timeout_ms)

        batch = UpdateBatch()
        in_batch = 0
        batch_started = time.perf_counter()
        try:
            for document in documents:
                if in_batch == 0:
                    batch_started = time.perf_counter()

                if not document.unique_id:
                    result.skipped.add(None, MISSING_UNIQUE_ID)
                    continue
                if not document.object_id:
                    result.skipped.add(document.unique_id, INVALID_OBJECT_ID)
                    continue
                try:
                    record = self._codec.encode_document(document)
                except FieldCodecError as e:
                    logger.warning("pusher.skip: unique_id=%s reason=%s", document.unique_id, e)
                    result.skipped.add(document.unique_id, f"{ENCODE_ERROR}:{e}")
                    continue
                if not record[ID_FIELD]:
                    result.skipped.add(document.unique_id, INVALID_OBJECT_ID)
                    continue

                batch.add_document(record, doc_id=document.unique_id)
                in_batch += 1

                if in_batch >= self._page_size:
                    self._commit(batch, in_batch, batch_started, result)
                    batch = UpdateBatch()
                    in_batch = 0

            # drain
            if in_batch > 0:
                self._commit(batch, in_batch, batch_started, result)
        except TransportError as e:
            result.error = str(e)
            result.status_code = e.status_code
            result.status_message = str(e)
            logger.error(
                "pusher.push failed after %d batch(es): %s (resume after unique_id=%s)",
                result.batches_committed, e, result.last_committed_id,
            )
        finally:
            logger.info(
                "pusher.push done: batches=%d committed=%d skipped=%d",
                result.batches_committed, result.documents_committed, result.skipped.count,
                extra={"documents_committed": result.documents_committed, "skipped": result.skipped.count},
            )
            if token is not None:
                correlation_id_ctx.reset(token)
        return result

    def clear_index(self, delete_query: str | None = None) -> Response:
        """
        delete_query에 매칭되는 문서를 모두 삭제하고 커밋한다. (되돌릴 수 없음)
        Args:
            delete_query: str | None  : ex. '*:*' 또는 'object_type:"product"' (기본: 전체)
        Returns:
            Response: 엔진 응답 상태
        """
        query = delete_query or MATCH_ALL
        batch = UpdateBatch().add_delete_query(query).add_commit()
        logger.warning("pusher.clear_index: query=%s", query)
        try:
            raw = self._transport.update(batch)
        except TransportError as e:
            logger.error("pusher.clear_index failed: %s", e)
            return Response(status_code=e.status_code, status_message=str(e), error=str(e))
        return Response(status_code=raw.status_code, status_message=raw.status_message)

    def get_config(self) -> dict[str, Any]:
        return {
            "endpoint": {
                "localhost": self._settings.connection_config(),
            },
            "page_size": self._page_size,
            "timeout_ms": self._timeout_ms,
        }

    #================= internal helpers =================
    def _commit(
        self,
        batch: UpdateBatch,
        size: int,
        batch_started: float,
        result: PushResult,
    ) -> None:
        batch.add_commit()
        raw = self._transport.update(batch)

        # 엔진이 거부한 항목은 커밋 건수/재개 지점에서 뺀다.
        failed_ids = {e.doc_id for e in raw.errors}
        accepted_ids = [o.doc_id for o in batch.operations if o.op == "add" and o.doc_id not in failed_ids]
        accepted = len(accepted_ids)
        batch_index = result.batches_committed
        result.batches_committed += 1
        result.documents_committed += accepted
        if accepted_ids:
            result.last_committed_id = accepted_ids[-1]
        result.status_code = raw.status_code
        result.status_message = raw.status_message
        result.error_count += len(raw.errors)
        for err in raw.errors[: max(self._sample_limit - len(result.errors), 0)]:
            result.errors.append(err.model_copy(update={"batch_index": batch_index}))

        event = BatchEvent(
            batch_index=batch_index,
            batch_size=size,
            elapsed_ms=round((time.perf_counter() - batch_started) * 1000, 3),
            status_code=raw.status_code,
            documents_committed=result.documents_committed,
        )
        logger.info("pusher.batch committed", extra=event.model_dump())
        if self._on_batch is not None:
            self._on_batch(event)
