from pydantic import BaseModel, Field
from typing import List, Any, Dict

from catalog_server.app.domain.models import Document


class ApiResponse(BaseModel):
    """
    공통 API 응답
    """
    success: bool = Field(..., description="성공 여부")
    message: str = Field(..., description="결과 메시지")
    data: Dict[str, Any] = Field(
        default_factory=dict,
        description="결과 딕셔너리. 내부 구조는 작업 타입에 따라 상이"
    )

class DeleteRequest(BaseModel):
    """
    문서 삭제 요청. ids 또는 field/value 중 하나를 지정한다.
    """
    ids: List[str] | None = Field(None, description="삭제할 unique_id 목록")
    field: str | None = Field(None, description="엔진 필드 이름(ex. brand_s)")
    value: Any = Field(None, description="필드 값")

class PushRequest(BaseModel):
    """
    문서 배치 색인 요청 바디
    """
    documents: List[Document] = Field(default_factory=list, description="색인할 문서 목록")

class PushFileRequest(BaseModel):
    """
    서버 측 JSON lines 파일 색인 요청 바디
    """
    path: str = Field(..., description="JSONL 파일 경로(file:// 허용)")
