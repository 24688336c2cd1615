"""
Process configuration, read once from the environment at startup.

SECURITY: the private key is held in memory only. It is never logged and
never rendered in an error body.
"""
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

from .errors import ConfigurationError

DEFAULT_API_HOST = "api.cdp.coinbase.com"
DEFAULT_QUERY_PATH = "/platform/v2/data/query/run"
DEFAULT_TIMEOUT_SECONDS = 30.0

# Tokens expire after 120s; an outbound call must not outlive its credential.
MAX_TIMEOUT_SECONDS = 120.0


class SigningScheme(str, Enum):
    ES256 = "ES256"
    EDDSA = "EdDSA"

    @classmethod
    def parse(cls, value: str) -> "SigningScheme":
        for scheme in cls:
            if scheme.value.lower() == value.strip().lower():
                return scheme
        raise ConfigurationError(
            "Unsupported signing scheme",
            hint=f"CDP_KEY_SCHEME must be one of: {', '.join(s.value for s in cls)}",
        )


@dataclass(frozen=True)
class CredentialPair:
    key_name: str
    private_key: str

    def __repr__(self) -> str:
        return f"CredentialPair(key_name={self.key_name!r}, private_key=<redacted>)"


@dataclass(frozen=True)
class Settings:
    key_name: Optional[str] = None
    private_key: Optional[str] = field(default=None, repr=False)
    scheme: SigningScheme = SigningScheme.ES256
    api_host: str = DEFAULT_API_HOST
    query_path: str = DEFAULT_QUERY_PATH
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    access_token: Optional[str] = field(default=None, repr=False)
    log_level: str = "INFO"

    @property
    def credentials(self) -> Optional[CredentialPair]:
        if not (self.key_name and self.private_key):
            return None
        return CredentialPair(key_name=self.key_name, private_key=self.private_key)

    @property
    def query_url(self) -> str:
        return f"https://{self.api_host}{self.query_path}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Missing credentials are allowed here; the forwarder reports them per
        request. An unknown scheme or an unusable timeout is rejected now.
        """
        env = os.environ if environ is None else environ

        try:
            timeout = float(env.get("CDP_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS))
        except ValueError:
            raise ConfigurationError(
                "Invalid outbound timeout",
                hint="CDP_TIMEOUT_SECONDS must be a number of seconds",
            )
        if not 0 < timeout < MAX_TIMEOUT_SECONDS:
            raise ConfigurationError(
                "Invalid outbound timeout",
                hint=f"CDP_TIMEOUT_SECONDS must be between 0 and {MAX_TIMEOUT_SECONDS:g}",
            )

        query_path = env.get("CDP_QUERY_PATH", DEFAULT_QUERY_PATH)
        if not query_path.startswith("/"):
            query_path = "/" + query_path

        return cls(
            key_name=env.get("CDP_KEY_NAME") or None,
            private_key=env.get("CDP_PRIVATE_KEY") or None,
            scheme=SigningScheme.parse(env.get("CDP_KEY_SCHEME", SigningScheme.ES256.value)),
            api_host=env.get("CDP_API_HOST", DEFAULT_API_HOST),
            query_path=query_path,
            timeout_seconds=timeout,
            access_token=env.get("PROXY_ACCESS_TOKEN") or None,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )
