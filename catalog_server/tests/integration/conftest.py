import pytest
from fastapi.testclient import TestClient

from catalog_server.app.api.deps import get_app_settings, get_catalog_client
from catalog_server.app.domain.services.catalog_client import CatalogClient
from catalog_server.app.main import app


@pytest.fixture
def api(settings, transport):
    """
    lifespan 없이 앱을 띄우고, 설정/클라이언트만 테스트용으로 교체한다.
    CatalogClient는 실제 객체를 쓰고 엔진 전송 객체만 목으로 둔다.
    """
    app.dependency_overrides[get_app_settings] = lambda: settings
    app.dependency_overrides[get_catalog_client] = lambda: CatalogClient(settings, transport)
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def secured_api(settings, transport):
    secured = settings.model_copy(update={"API_KEY": "secret"})
    app.dependency_overrides[get_app_settings] = lambda: secured
    app.dependency_overrides[get_catalog_client] = lambda: CatalogClient(secured, transport)
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()
