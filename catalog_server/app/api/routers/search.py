from fastapi import APIRouter, Depends
from catalog_server.app.api.deps import get_catalog_client
from catalog_server.app.domain.models import QuerySpec
from catalog_server.app.domain.services.catalog_client import CatalogClient
from catalog_server.app.models.schemas import ApiResponse
from catalog_server.app.platform.exceptions import TransportError
import logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])

@router.post(
    "",
    summary="카탈로그 검색",
    description=(
        "QuerySpec으로 문서를 검색합니다. `filters`, `facets`, `stats`로 "
        "필터 절/패싯 카운트/통계를 함께 요청할 수 있습니다."
    ),
    operation_id="searchCatalog",
    status_code=200,
    response_model=ApiResponse,
    responses={
        200: {
            "description": "검색 성공",
            "content": {
                "application/json": {
                    "examples": {
                        "basic": {
                            "summary": "기본 검색 예시",
                            "value": {
                                "success": True,
                                "message": "검색 성공",
                                "data": {
                                    "num_found": 1,
                                    "current_page": 1,
                                    "facets": {"acme": 1},
                                    "stats": None,
                                    "documents": [
                                        {
                                            "unique_id": "product_1",
                                            "object_id": 1,
                                            "object_type": "product",
                                            "fields": [
                                                {"name": "brand", "value": "Acme", "type": "string"}
                                            ]
                                        }
                                    ]
                                }
                            }
                        }
                    }
                }
            },
        },
        400: {"description": "잘못된 요청 값"},
        502: {"description": "검색엔진 통신 실패"},
    },
)
def search(spec: QuerySpec, client: CatalogClient = Depends(get_catalog_client)):
    logger.info("SearchRequest: q=%s start=%s size=%s", spec.query_text, spec.page_start, spec.page_size)
    response = client.query(spec)
    if response.error:
        raise TransportError(response.error, status_code=response.status_code)
    return ApiResponse(
        success=True,
        message="검색 성공",
        data=response.model_dump(mode="json", exclude={"query"}))
