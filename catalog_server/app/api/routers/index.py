from fastapi import APIRouter, Depends, Query
from catalog_server.app.adapters.pullers.jsonl_puller import JsonlPuller
from catalog_server.app.api.deps import get_catalog_client
from catalog_server.app.domain.services.catalog_client import CatalogClient
from catalog_server.app.models.schemas import ApiResponse, PushFileRequest, PushRequest
from catalog_server.app.platform.exceptions import IndexingFailed, TransportError
from catalog_server.app.security.guards import require_api_key
import logging
logger = logging.getLogger(__name__)


router = APIRouter(prefix="/index", tags=["index"], dependencies=[Depends(require_api_key)])

_PUSH_EXAMPLE = {
    "success": True,
    "message": "문서 인덱싱 성공",
    "data": {
        "batches_committed": 3,
        "documents_committed": 250,
        "last_committed_id": "product_250",
        "skipped": {"count": 0, "by_reason": {}, "items": []},
        "error_count": 0,
        "errors": [],
        "failed": False,
        "status_code": 200,
        "status_message": "OK"
    }
}


def _run_push(client: CatalogClient, documents) -> ApiResponse:
    result = client.get_pusher().push(documents)
    if result.failed and result.batches_committed == 0:
        raise IndexingFailed(client.settings.OPENSEARCH_INDEX, result.error or "unknown")
    message = "문서 인덱싱 성공" if not result.failed else "문서 인덱싱 일부 실패"
    return ApiResponse(
        success=not result.failed,
        message=message,
        data=result.model_dump(mode="json", exclude={"documents", "facets", "stats", "query", "num_found", "current_page"}))


@router.post(
    "",
    summary="문서 배치 인덱싱",
    description=(
        "요청 바디의 문서들을 PUSHER_PAGE_SIZE 단위 배치로 커밋합니다. "
        "unique_id/object_id가 없는 문서는 건너뛰고 `skipped`에 사유를 기록합니다."
    ),
    operation_id="pushDocuments",
    status_code=200,
    response_model=ApiResponse,
    responses={
        200: {
            "description": "문서 인덱싱 결과",
            "content": {"application/json": {"examples": {"push": {"summary": "250건, 페이지 100", "value": _PUSH_EXAMPLE}}}},
        },
        400: {"description": "잘못된 요청 값"},
        502: {"description": "검색엔진 통신 실패"},
    },
)
def push(req: PushRequest, client: CatalogClient = Depends(get_catalog_client)):
    logger.info("PushRequest: documents=%d", len(req.documents))
    return _run_push(client, iter(req.documents))


@router.post(
    "/file",
    summary="JSONL 파일 인덱싱",
    description="INDEX_FILE_ROOT 아래의 JSON lines 파일을 한 줄씩 읽어 배치로 커밋합니다. 기준 디렉토리 밖의 경로는 403입니다.",
    operation_id="pushDocumentsFile",
    status_code=200,
    response_model=ApiResponse,
)
def push_file(req: PushFileRequest, client: CatalogClient = Depends(get_catalog_client)):
    logger.info("PushFileRequest: path=%s", req.path)
    puller = JsonlPuller(req.path, base_dir=client.settings.INDEX_FILE_ROOT)
    return _run_push(client, puller)


@router.delete(
    "",
    summary="인덱스 비우기",
    description="`query`에 매칭되는 문서를 모두 삭제하고 커밋합니다. 기본값은 전체 삭제입니다.",
    operation_id="clearIndex",
    response_model=ApiResponse,
)
def clear(
    query: str | None = Query(None, description="ex. object_type:\"product\""),
    client: CatalogClient = Depends(get_catalog_client)):
    logger.info("ClearRequest: query=%s", query)
    response = client.get_pusher().clear_index(query)
    if response.error:
        raise TransportError(response.error, status_code=response.status_code)
    return ApiResponse(
        success=True,
        message="인덱스 삭제 성공",
        data={"status_code": response.status_code, "status_message": response.status_message})
