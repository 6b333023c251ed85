from fastapi import APIRouter, Depends
from catalog_server.app.api.deps import get_catalog_client
from catalog_server.app.domain.models import Document, Response
from catalog_server.app.domain.services.catalog_client import CatalogClient
from catalog_server.app.models.schemas import ApiResponse, DeleteRequest
from catalog_server.app.platform.exceptions import InvalidInput, TransportError
from catalog_server.app.security.guards import require_api_key
import logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"], dependencies=[Depends(require_api_key)])


def _to_api_response(response: Response, message: str) -> ApiResponse:
    """실패 Response는 TransportError로 올려 502로 매핑한다."""
    if response.error:
        raise TransportError(response.error, status_code=response.status_code)
    return ApiResponse(
        success=True,
        message=message,
        data={"status_code": response.status_code, "status_message": response.status_message})


@router.post("", summary="문서 1건 색인", operation_id="addDocument", response_model=ApiResponse)
def add(document: Document, client: CatalogClient = Depends(get_catalog_client)):
    logger.info("AddRequest: unique_id=%s", document.unique_id)
    return _to_api_response(client.add(document), "문서 색인 성공")


@router.delete("/{unique_id}", summary="문서 1건 삭제", operation_id="deleteDocument", response_model=ApiResponse)
def delete_one(unique_id: str, client: CatalogClient = Depends(get_catalog_client)):
    logger.info("DeleteRequest: unique_id=%s", unique_id)
    return _to_api_response(client.delete_by_id(unique_id), "문서 삭제 성공")


@router.post(
    "/delete",
    summary="문서 여러 건 삭제",
    description="`ids`가 있으면 ID로, 없으면 `field`/`value` 조건으로 삭제합니다.",
    operation_id="deleteDocuments",
    response_model=ApiResponse,
)
def delete_many(req: DeleteRequest, client: CatalogClient = Depends(get_catalog_client)):
    logger.info("DeleteRequest: %s", req)
    if req.ids:
        return _to_api_response(client.delete_by_ids(req.ids), "문서 삭제 성공")
    if req.field and req.value is not None:
        return _to_api_response(client.delete_by_field(req.field, req.value), "문서 삭제 성공")
    raise InvalidInput("either 'ids' or 'field' and 'value' must be given")
