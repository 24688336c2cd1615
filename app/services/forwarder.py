"""
Forward SQL queries to the CDP query API with a freshly minted JWT.

Stateless: one token per call, no caching, no retries. Every failure is
turned into a structured JSON body; nothing raises out of forward().
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx
from pydantic import ValidationError

from ..lib.errors import (
    ClientError,
    ConfigurationError,
    MethodNotAllowed,
    ProxyError,
    Unauthorized,
    UpstreamError,
    UpstreamNonJsonError,
)
from ..lib.jwt_signer import sign
from ..lib.settings import Settings
from ..models.query import DEFAULT_CACHE_MAX_AGE_MS, QueryRequest

logger = logging.getLogger(__name__)

TARGET_METHOD = "POST"
CONFIG_HINT = "CDP_KEY_NAME and CDP_PRIVATE_KEY environment variables must be set"


@dataclass
class ForwardResult:
    status_code: int
    body: Any = None
    # Preflight answers carry no body at all, as opposed to a JSON null.
    empty: bool = False


def check_access_token(settings: Settings, authorization: Optional[str]) -> None:
    """Require `Authorization: Bearer <PROXY_ACCESS_TOKEN>` when one is configured."""
    if not settings.access_token:
        return
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not secrets.compare_digest(
        token.strip().encode(), settings.access_token.encode()
    ):
        raise Unauthorized()


def parse_query(payload: Any) -> QueryRequest:
    if not isinstance(payload, dict):
        raise ClientError("Request body must be a JSON object")
    sql = payload.get("sql")
    if not isinstance(sql, str) or not sql:
        raise ClientError("Missing required field: sql")

    cache = payload.get("cache")
    if cache is None:
        cache = {"maxAgeMs": DEFAULT_CACHE_MAX_AGE_MS}
    data = {"sql": sql, "cache": cache}

    try:
        return QueryRequest.model_validate(data)
    except ValidationError as e:
        raise ClientError(
            "Invalid field: cache",
            {"details": [err["msg"] for err in e.errors()]},
        )


def relay_response(response: httpx.Response) -> ForwardResult:
    content_type = response.headers.get("content-type", "")
    if "application/json" not in content_type:
        raise UpstreamNonJsonError(response.status_code, response.text)

    try:
        data = response.json()
    except ValueError:
        raise UpstreamNonJsonError(response.status_code, response.text)

    if response.is_error:
        raise UpstreamError(response.status_code, data)
    return ForwardResult(response.status_code, data)


async def _forward(
    method: str,
    payload: Any,
    settings: Settings,
    signer: Callable[..., str],
    client: Optional[httpx.AsyncClient],
    authorization: Optional[str],
) -> ForwardResult:
    method = method.upper()
    if method == "OPTIONS":
        return ForwardResult(200, empty=True)
    if method != "POST":
        raise MethodNotAllowed()

    check_access_token(settings, authorization)

    creds = settings.credentials
    if creds is None:
        raise ConfigurationError(hint=CONFIG_HINT)

    query = parse_query(payload)

    token = signer(
        creds.key_name,
        creds.private_key,
        settings.scheme,
        TARGET_METHOD,
        settings.query_path,
        host=settings.api_host,
    )

    headers = {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }
    # Only what the caller sent (or the default hint) goes out, unmodified.
    body = query.model_dump(exclude_unset=True)

    if client is None:
        async with httpx.AsyncClient(timeout=settings.timeout_seconds) as owned:
            response = await owned.post(settings.query_url, headers=headers, json=body)
    else:
        response = await client.post(
            settings.query_url, headers=headers, json=body, timeout=settings.timeout_seconds
        )

    logger.info(f"CDP query API responded {response.status_code}")
    return relay_response(response)


async def forward(
    method: str,
    payload: Any,
    settings: Settings,
    *,
    signer: Callable[..., str] = sign,
    client: Optional[httpx.AsyncClient] = None,
    authorization: Optional[str] = None,
) -> ForwardResult:
    """
    Handle one proxied query.

    Args:
        method: inbound HTTP method
        payload: parsed JSON body ({"sql": ..., "cache": {...}}), None if absent
        settings: process configuration
        signer: token minting function, same signature as jwt_signer.sign
        client: optional shared httpx client (tests inject a mock transport)
        authorization: inbound Authorization header, checked only when
            PROXY_ACCESS_TOKEN is configured

    Returns:
        ForwardResult with the status code and JSON body for the caller
    """
    try:
        return await _forward(method, payload, settings, signer, client, authorization)
    except ProxyError as e:
        if e.status_code >= 500:
            logger.error(f"Query forwarding failed ({e.status_code}): {e.error}")
        else:
            logger.warning(f"Rejected query request ({e.status_code}): {e.error}")
        return ForwardResult(e.status_code, e.to_dict())
    except Exception as e:
        logger.exception("Unexpected error forwarding query")
        return ForwardResult(500, {"error": str(e) or e.__class__.__name__})
