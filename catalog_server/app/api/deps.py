from __future__ import annotations

from fastapi import Depends, Request
from opensearchpy import OpenSearch

from catalog_server.app.adapters.transports.opensearch_transport import OpenSearchTransport
from catalog_server.app.domain.services.catalog_client import CatalogClient
from catalog_server.app.platform.config import Settings, get_settings


# ---- 설정 ----
def get_app_settings(request: Request) -> Settings:
    """
    main.py의 lifespan에서 만들어 넣어둔 Settings를 꺼낸다.
    없으면(테스트 등) 즉석 생성.
    """
    if hasattr(request.app.state, "settings"):
        return request.app.state.settings
    return get_settings()


def create_opensearch(settings: Settings) -> OpenSearch:
    conn = settings.connection_config()
    return OpenSearch(
        hosts=[{"host": conn["host"], "port": conn["port"], "scheme": conn["scheme"]}],
        verify_certs=False,
    )


# ---- 클라이언트 ----
def get_opensearch(
    request: Request,
    settings: Settings = Depends(get_app_settings)) -> OpenSearch:
    """
    앱 시작 시 lifespan에서 만들어 넣어둔 OpenSearch 클라이언트를 꺼낸다.
    없으면(테스트 등) 즉석 생성.
    """
    if hasattr(request.app.state, "opensearch"):
        return request.app.state.opensearch
    return create_opensearch(settings)


def get_catalog_client(
    os: OpenSearch = Depends(get_opensearch),
    settings: Settings = Depends(get_app_settings)) -> CatalogClient:
    """
    FastAPI DI에서 OpenSearch 클라이언트를 받아 CatalogClient를 생성해 주입한다.
    """
    transport = OpenSearchTransport(os, settings.OPENSEARCH_INDEX)
    return CatalogClient(settings, transport)
