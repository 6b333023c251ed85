# catalog_server/app/platform/response.py
from catalog_server.app.platform.logging import correlation_id_ctx

def ok(data=None, message="ok"):
    return {"success": True, "message": message, "data": data, "trace_id": correlation_id_ctx.get()}
