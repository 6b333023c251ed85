"""
도메인 포트(추상 인터페이스).

번역 계층과 색인 파이프라인은 아래 포트들(추상)에만 의존합니다.
구체 구현은 adapters 레이어에서 제공하고, 생성자/FastAPI DI로 주입합니다.
"""

from __future__ import annotations

from typing import Any, Iterator, Protocol
from .models import (
    Document,
    EngineQuery,
    RawResult,
    UpdateBatch,
)


class TransportPort(Protocol):
    """
    검색엔진 클라이언트(블랙박스).
    네트워크/재시도/프로토콜 세부사항은 구현체가 소유한다.
    실패는 platform.exceptions.TransportError로 올린다.
    """

    def execute(self, query: EngineQuery | dict[str, Any]) -> RawResult:
        """
        Args:
            query: 번역된 EngineQuery 또는 엔진 원본 요청 바디
        Returns:
            RawResult: 엔진 원본 결과
        """
        ...

    def update(self, batch: UpdateBatch) -> RawResult:
        """
        Returns:
            RawResult: 마지막 작업 기준 상태 및 항목 단위 실패
        """
        ...

    def with_timeout(self, timeout_ms: int) -> "TransportPort":
        """같은 연결을 공유하고 요청 타임아웃만 다른 전송 객체를 반환한다."""
        ...


class DocumentSource(Protocol):
    """
    문서 공급자(puller).
    유한/무한 여부와 상관없이 push 호출당 한 번만 순회된다.
    """

    def __iter__(self) -> Iterator[Document]:
        ...
