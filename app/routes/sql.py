from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from ..services.forwarder import forward

router = APIRouter(tags=["sql"])

# Sent on every response, including errors and preflights.
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


@router.api_route(
    "/api/sql",
    methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
)
async def proxy_sql(request: Request):
    payload = None
    if request.method == "POST":
        try:
            payload = await request.json()
        except ValueError:
            payload = None

    result = await forward(
        request.method,
        payload,
        request.app.state.settings,
        client=request.app.state.http_client,
        authorization=request.headers.get("authorization"),
    )

    if result.empty:
        return Response(status_code=result.status_code, headers=CORS_HEADERS)
    return JSONResponse(result.body, status_code=result.status_code, headers=CORS_HEADERS)
