"""
Service descriptor and token self-test.

/api/test mints a real token with the configured credentials, checks it with
PyJWT against the matching public key and returns the decoded header and
claims. The token itself is never returned.
"""
import logging

import jwt
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..lib.errors import SigningFailure
from ..lib.jwt_signer import ISSUER, load_private_key, sign
from ..services.forwarder import TARGET_METHOD
from .sql import CORS_HEADERS

router = APIRouter(tags=["status"])
logger = logging.getLogger(__name__)


@router.get("/api")
def service_info():
    return JSONResponse(
        {
            "status": "ok",
            "message": "Coinbase SQL API Proxy",
            "endpoint": "/api/sql",
            "method": "POST",
            "headers": "Content-Type: application/json",
        },
        headers={"Access-Control-Allow-Origin": "*"},
    )


@router.get("/api/test")
def token_self_test(request: Request):
    settings = request.app.state.settings
    creds = settings.credentials
    if creds is None:
        return JSONResponse(
            {
                "error": "Not configured",
                "keyIdSet": bool(settings.key_name),
                "privateKeySet": bool(settings.private_key),
            },
            status_code=500,
            headers=CORS_HEADERS,
        )

    try:
        token = sign(
            creds.key_name,
            creds.private_key,
            settings.scheme,
            TARGET_METHOD,
            settings.query_path,
            host=settings.api_host,
        )
        public_key = load_private_key(creds.private_key, settings.scheme).public_key()
    except SigningFailure as e:
        logger.error(f"Token self-test failed: {e.message}")
        return JSONResponse({"error": e.message}, status_code=500, headers=CORS_HEADERS)

    try:
        header = jwt.get_unverified_header(token)
        payload = jwt.decode(
            token,
            public_key,
            algorithms=[settings.scheme.value],
            issuer=ISSUER,
        )
    except jwt.InvalidTokenError as e:
        logger.error(f"Minted token rejected by PyJWT: {e}")
        return JSONResponse(
            {"error": f"Minted token failed verification: {e}"},
            status_code=500,
            headers=CORS_HEADERS,
        )

    return JSONResponse(
        {
            "success": True,
            "jwtLength": len(token),
            "header": header,
            "payload": payload,
        },
        headers=CORS_HEADERS,
    )


@router.get("/healthz")
def health():
    return {"ok": True}
