from fastapi import APIRouter, Depends
from catalog_server.app.api.deps import get_app_settings
from catalog_server.app.platform.config import Settings
from catalog_server.app.platform.response import ok

router = APIRouter(prefix="/health", tags=["health"])

@router.get("")
def health(settings: Settings = Depends(get_app_settings)):
    return ok({"app": settings.APP_NAME, "index": settings.OPENSEARCH_INDEX})
