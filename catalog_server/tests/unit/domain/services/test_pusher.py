from unittest.mock import MagicMock

import pytest

from catalog_server.app.domain.models import (
    BatchEvent,
    Document,
    Field,
    IndexErrorItem,
    RawResult,
)
from catalog_server.app.domain.services.pusher import Pusher
from catalog_server.app.platform.config import DEFAULT_PUSHER_TIMEOUT_MS
from catalog_server.app.platform.exceptions import TransportError
from catalog_server.app.platform.logging import correlation_id_ctx


def _docs(n, start=1):
    return [
        Document(unique_id=f"product_{i}", object_id=i, object_type="product",
                 fields=[Field(name="brand", value="Acme")])
        for i in range(start, start + n)
    ]


def _batch_sizes(transport):
    return [len(c.args[0].documents) for c in transport.update.call_args_list]


def test_push_commits_in_pages(settings, transport):
    """250건, 페이지 100 → 100/100/50 세 번 커밋"""
    transport.update.side_effect = [
        RawResult(status_code=200, status_message="OK"),
        RawResult(status_code=200, status_message="OK"),
        RawResult(status_code=201, status_message="last"),
    ]

    result = Pusher(settings, transport).push(iter(_docs(250)))

    assert _batch_sizes(transport) == [100, 100, 50]
    assert all(c.args[0].has_commit for c in transport.update.call_args_list)
    assert result.batches_committed == 3
    assert result.documents_committed == 250
    assert result.last_committed_id == "product_250"
    # 최종 상태는 마지막 커밋 기준
    assert (result.status_code, result.status_message) == (201, "last")
    assert result.failed is False


def test_push_uses_pusher_timeout(settings, transport):
    Pusher(settings, transport)
    transport.with_timeout.assert_called_once_with(DEFAULT_PUSHER_TIMEOUT_MS)

    transport.with_timeout.reset_mock()
    Pusher(settings.model_copy(update={"PUSHER_TIMEOUT": 5000}), transport)
    transport.with_timeout.assert_called_once_with(5000)


def test_batch_never_exceeds_page_size(settings, transport):
    small = settings.model_copy(update={"PUSHER_PAGE_SIZE": 7})
    Pusher(small, transport).push(_docs(30))
    sizes = _batch_sizes(transport)
    assert sizes == [7, 7, 7, 7, 2]
    assert sum(sizes) == 30


def test_empty_stream_commits_nothing(settings, transport):
    result = Pusher(settings, transport).push(iter([]))

    transport.update.assert_not_called()
    assert result.batches_committed == 0
    assert result.status_code == 200
    assert result.failed is False


def test_skipped_documents_are_reported(settings, transport):
    docs = _docs(3)
    docs.insert(1, Document(unique_id="", object_id=9))
    docs.insert(2, Document(unique_id="no_object", object_id=0))
    docs.append(Document(unique_id="bad_date", object_id=5, fields=[
        Field(name="created", value="not a date", type="datetime")]))

    result = Pusher(settings, transport).push(docs)

    assert _batch_sizes(transport) == [3]
    committed = [d["unique_id"] for d in transport.update.call_args.args[0].documents]
    assert committed == ["product_1", "product_2", "product_3"]
    assert result.skipped.count == 3
    assert result.skipped.reasons() == {
        "missing_unique_id": 1, "invalid_object_id": 1, "encode_error": 1,
    }
    assert result.skipped.items[2].unique_id == "bad_date"


def test_skipped_documents_do_not_count_toward_batch(settings, transport):
    small = settings.model_copy(update={"PUSHER_PAGE_SIZE": 2})
    docs = [_docs(1)[0], Document(unique_id=""), *_docs(1, start=2), *_docs(1, start=3)]

    Pusher(small, transport).push(docs)

    assert _batch_sizes(transport) == [2, 1]


def test_transport_failure_stops_and_reports_progress(settings, transport):
    transport.update.side_effect = [
        RawResult(),
        RawResult(),
        TransportError("connection refused", status_code=503),
    ]
    consumed = []

    def stream():
        for d in _docs(350):
            consumed.append(d.unique_id)
            yield d

    result = Pusher(settings, transport).push(stream())

    assert result.failed is True
    assert result.error == "connection refused"
    assert result.status_code == 503
    assert result.batches_committed == 2
    assert result.documents_committed == 200
    assert result.last_committed_id == "product_200"
    # 실패 후에는 더 이상 읽지 않는다
    assert len(consumed) == 300
    assert transport.update.call_count == 3


def test_on_batch_events(settings, transport):
    events: list[BatchEvent] = []
    small = settings.model_copy(update={"PUSHER_PAGE_SIZE": 4})

    Pusher(small, transport, on_batch=events.append).push(_docs(10))

    assert [e.batch_index for e in events] == [0, 1, 2]
    assert [e.batch_size for e in events] == [4, 4, 2]
    assert [e.documents_committed for e in events] == [4, 8, 10]
    assert all(e.elapsed_ms >= 0 for e in events)
    assert all(e.status_code == 200 for e in events)


def test_item_errors_are_collected_with_batch_index(settings, transport):
    small = settings.model_copy(update={"PUSHER_PAGE_SIZE": 2})
    transport.update.side_effect = [
        RawResult(),
        RawResult(status_code=207, status_message="1 item(s) failed",
                  errors=[IndexErrorItem(doc_id="product_4", reason="mapper_parsing_exception")]),
    ]

    result = Pusher(small, transport).push(_docs(4))

    assert result.failed is False
    assert result.status_code == 207
    assert [(e.doc_id, e.batch_index) for e in result.errors] == [("product_4", 1)]


def test_push_sets_and_restores_correlation_id(settings, transport):
    seen = []
    Pusher(settings, transport, on_batch=lambda e: seen.append(correlation_id_ctx.get())).push(_docs(1))

    assert seen[0].startswith("push-")
    assert correlation_id_ctx.get() == "-"


def test_clear_index_defaults_to_match_all(settings, transport):
    response = Pusher(settings, transport).clear_index()

    ops = transport.update.call_args.args[0].operations
    assert [(o.op, o.query) for o in ops] == [("delete_query", "*:*"), ("commit", None)]
    assert response.success is True


def test_clear_index_with_query(settings, transport):
    Pusher(settings, transport).clear_index('object_type:"product"')

    ops = transport.update.call_args.args[0].operations
    assert [o.query for o in ops if o.op == "delete_query"] == ['object_type:"product"']
    assert ops[-1].op == "commit"


def test_clear_index_failure_returns_error_response(settings, transport):
    transport.update.side_effect = TransportError("timeout", status_code=504)

    response = Pusher(settings, transport).clear_index()

    assert response.error == "timeout"
    assert response.status_code == 504
    assert response.success is False


def test_get_config(settings, transport):
    config = Pusher(settings, transport).get_config()

    assert config == {
        "endpoint": {"localhost": {"host": "search", "port": 9200, "scheme": "http", "index": "catalog-test"}},
        "page_size": 100,
        "timeout_ms": DEFAULT_PUSHER_TIMEOUT_MS,
    }


@pytest.mark.parametrize("page_size", [1, 3, 250, 1000])
def test_every_valid_document_committed_once(settings, transport, page_size):
    Pusher(settings.model_copy(update={"PUSHER_PAGE_SIZE": page_size}), transport).push(_docs(250))

    committed = [d["unique_id"] for c in transport.update.call_args_list for d in c.args[0].documents]
    assert committed == [f"product_{i}" for i in range(1, 251)]


def test_push_accepts_any_iterable_source(settings):
    transport = MagicMock()
    transport.with_timeout.return_value = transport
    transport.update.return_value = RawResult()

    result = Pusher(settings, transport).push(d for d in _docs(2))

    assert result.documents_committed == 2


def test_rejected_items_are_not_counted_as_committed(settings, transport):
    """엔진이 거부한 항목은 커밋 건수/재개 지점에 포함되지 않는다."""
    small = settings.model_copy(update={"PUSHER_PAGE_SIZE": 2})
    transport.update.side_effect = [
        RawResult(status_code=207, status_message="2 item(s) failed", errors=[
            IndexErrorItem(doc_id="product_1", reason="mapper_parsing_exception"),
            IndexErrorItem(doc_id="product_2", reason="mapper_parsing_exception"),
        ]),
        RawResult(status_code=207, status_message="1 item(s) failed", errors=[
            IndexErrorItem(doc_id="product_4", reason="mapper_parsing_exception"),
        ]),
    ]
    events: list[BatchEvent] = []

    result = Pusher(small, transport, on_batch=events.append).push(_docs(4))

    assert result.batches_committed == 2
    assert result.documents_committed == 1
    assert result.last_committed_id == "product_3"
    assert result.error_count == 3
    assert [e.documents_committed for e in events] == [0, 1]


def test_all_rejected_batch_keeps_no_resume_point(settings, transport):
    small = settings.model_copy(update={"PUSHER_PAGE_SIZE": 2})
    transport.update.return_value = RawResult(status_code=207, errors=[
        IndexErrorItem(doc_id="product_1", reason="x"),
        IndexErrorItem(doc_id="product_2", reason="x"),
    ])

    result = Pusher(small, transport).push(_docs(2))

    assert result.documents_committed == 0
    assert result.last_committed_id is None


def test_skip_and_error_samples_are_bounded(settings, transport):
    """스킵/실패 항목은 집계는 전부, 샘플은 SKIP_REPORT_SAMPLE_LIMIT 건까지만 보관한다."""
    limited = settings.model_copy(update={"PUSHER_PAGE_SIZE": 10, "SKIP_REPORT_SAMPLE_LIMIT": 5})
    transport.update.side_effect = lambda batch: RawResult(status_code=207, errors=[
        IndexErrorItem(doc_id=d["unique_id"], reason="x") for d in batch.documents
    ])

    def stream():
        for i in range(5000):
            yield Document(unique_id="", object_id=i)
        yield from _docs(30)

    result = Pusher(limited, transport).push(stream())

    assert result.skipped.count == 5000
    assert result.skipped.reasons() == {"missing_unique_id": 5000}
    assert len(result.skipped.items) == 5
    assert result.error_count == 30
    assert len(result.errors) == 5
    assert result.documents_committed == 0
