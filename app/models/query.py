from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CACHE_MAX_AGE_MS = 5000


class CacheHint(BaseModel):
    # Unknown cache options are passed through to the remote API.
    model_config = ConfigDict(extra="allow")

    maxAgeMs: int = Field(DEFAULT_CACHE_MAX_AGE_MS, ge=0, strict=True)


class QueryRequest(BaseModel):
    """Body forwarded to the remote query API."""
    sql: str = Field(..., min_length=1)
    cache: CacheHint = Field(default_factory=CacheHint)
