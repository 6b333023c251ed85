import sys
from pathlib import Path

# 프로젝트 루트 경로를 sys.path에 추가 (…/<project-root>)
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from unittest.mock import MagicMock
import pytest

from catalog_server.app.domain.models import RawResult
from catalog_server.app.platform.config import Settings


@pytest.fixture
def settings(tmp_path):
    """환경변수/.env 영향을 받지 않는 테스트용 설정(파일 색인 기준 디렉토리 = tmp_path)"""
    return Settings(
        _env_file=None,
        OPENSEARCH_HOST="http://search:9200",
        OPENSEARCH_INDEX="catalog-test",
        PUSHER_PAGE_SIZE=100,
        INDEX_FILE_ROOT=str(tmp_path),
    )


@pytest.fixture
def transport():
    """
    TransportPort 목 객체.
    with_timeout은 자기 자신을 돌려주므로 호출 기록이 한 곳에 모인다.
    """
    t = MagicMock()
    t.with_timeout.return_value = t
    t.update.return_value = RawResult()
    t.execute.return_value = RawResult()
    return t
