from urllib.parse import urlparse

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# 푸셔 타임아웃 미설정 시 사용하는 기본값(ms)
DEFAULT_PUSHER_TIMEOUT_MS = 60_000


class Settings(BaseSettings):
    """
    애플리케이션 설정.

    환경변수 또는 .env 파일에서 로드한다.
    전역 인스턴스를 두지 않고, get_settings()로 생성해 생성자 주입한다.
    """
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "catalog-search-api"
    DEBUG: bool = False

    # ---- 엔진 연결 ----
    OPENSEARCH_HOST: str = "http://localhost:9200"
    OPENSEARCH_INDEX: str = "catalog"

    # ---- 푸셔 / 쿼리 ----
    PUSHER_PAGE_SIZE: int = Field(100, gt=0, description="커밋 단위 문서 수")
    PUSHER_TIMEOUT: int | None = Field(None, gt=0, description="푸셔 요청 타임아웃(ms)")
    QUERY_TIMEOUT: int = Field(10_000, gt=0, description="쿼리 요청 타임아웃(ms)")
    SKIP_REPORT_SAMPLE_LIMIT: int = Field(100, ge=0, description="push 결과에 보관하는 스킵/실패 항목 샘플 수")

    # ---- 파일 색인 ----
    INDEX_FILE_ROOT: str = Field("data", description="/api/index/file이 읽을 수 있는 기준 디렉토리")

    # ---- 로깅 ----
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    LOG_TO_FILE: bool = False
    LOG_DIR: str = "/var/log/app"

    API_KEY: str | None = None

    @property
    def pusher_timeout_ms(self) -> int:
        return self.PUSHER_TIMEOUT or DEFAULT_PUSHER_TIMEOUT_MS

    def connection_config(self) -> dict:
        """
        OPENSEARCH_HOST URL을 host/port/scheme으로 분해한다.
        Returns:
            dict: host, port, scheme, index
        """
        u = urlparse(self.OPENSEARCH_HOST)
        return {
            "host": u.hostname or "localhost",
            "port": u.port or 9200,
            "scheme": u.scheme or "http",
            "index": self.OPENSEARCH_INDEX,
        }


def get_settings(**overrides) -> Settings:
    return Settings(**overrides)
