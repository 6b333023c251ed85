from fastapi import Depends, Header, HTTPException, status
from catalog_server.app.api.deps import get_app_settings
from catalog_server.app.platform.config import Settings

def require_api_key(
    x_api_key: str = Header(None, alias="X-API-Key"),
    settings: Settings = Depends(get_app_settings)):
    # API_KEY 미설정 시 검사하지 않는다.
    if settings.API_KEY is None:
        return
    if not x_api_key or x_api_key != settings.API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key")
