"""
Short-lived JWT signing for CDP API credentials.

Two schemes, one per deployment (chosen by configuration, never by
inspecting the key):

ES256
    Key material is PEM text. Literal "\\n" sequences from single-line env
    vars are expanded first. PKCS8 ("BEGIN PRIVATE KEY") and SEC1
    ("BEGIN EC PRIVATE KEY") framings both go through the same PEM loader;
    the result must be an EC key on P-256. cryptography returns ECDSA
    signatures DER-encoded, JWS requires raw R || S (32 bytes each), so the
    signature is always converted.

EdDSA
    Key material is base64 of 64 bytes: seed (32) || public key (32). The
    seed is imported by prefixing it with the fixed PKCS8 header
    30 2e 02 01 00 30 05 06 03 2b 65 70 04 22 04 20 and loading the DER.
    Ed25519 hashes internally, the signing input is signed as-is.

Claim shapes differ per scheme: ES256 carries a single "uri" string, EdDSA a
"uris" list. The remote API expects them this way.
"""
import base64
import binascii
import json
import secrets
import time
from typing import Optional, Tuple, Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

from .errors import InvalidKeyMaterial, SigningFailure
from .settings import DEFAULT_API_HOST, SigningScheme

ISSUER = "cdp"
TOKEN_TTL_SECONDS = 120

ES256_COORDINATE_BYTES = 32
ED25519_KEY_MATERIAL_BYTES = 64
ED25519_SEED_BYTES = 32

# PKCS8 PrivateKeyInfo header for a raw Ed25519 seed (RFC 8410):
# SEQUENCE, version 0, AlgorithmIdentifier { 1.3.101.112 }, OCTET STRING { OCTET STRING (32) }
ED25519_PKCS8_PREFIX = bytes.fromhex("302e020100300506032b657004220420")

PrivateKey = Union[ec.EllipticCurvePrivateKey, ed25519.Ed25519PrivateKey]
PublicKey = Union[ec.EllipticCurvePublicKey, ed25519.Ed25519PublicKey]


def b64url_encode(data: bytes) -> str:
    """Base64URL encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def b64url_decode(data: str) -> bytes:
    """Base64URL decode with padding restoration."""
    padding = 4 - len(data) % 4
    if padding != 4:
        data += "=" * padding
    return base64.urlsafe_b64decode(data)


def _encode_segment(obj: dict) -> str:
    return b64url_encode(json.dumps(obj, separators=(",", ":")).encode())


def generate_nonce() -> str:
    """16 random bytes as 32 lowercase hex chars, fresh on every call."""
    return secrets.token_bytes(16).hex()


# =============================================================================
# Key loading
# =============================================================================

def load_es256_key(pem: str) -> ec.EllipticCurvePrivateKey:
    pem = pem.strip().replace("\\n", "\n")
    try:
        key = serialization.load_pem_private_key(pem.encode(), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise InvalidKeyMaterial(f"Could not load PEM private key: {e}")

    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise InvalidKeyMaterial("ES256 requires an EC private key")
    if not isinstance(key.curve, ec.SECP256R1):
        raise InvalidKeyMaterial(f"ES256 requires curve P-256, got {key.curve.name}")
    return key


def load_ed25519_key(material: str) -> ed25519.Ed25519PrivateKey:
    try:
        raw = base64.b64decode("".join(material.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidKeyMaterial(f"Ed25519 key material is not valid base64: {e}")

    if len(raw) != ED25519_KEY_MATERIAL_BYTES:
        raise InvalidKeyMaterial(
            f"Ed25519 key material must decode to {ED25519_KEY_MATERIAL_BYTES} bytes, got {len(raw)}"
        )

    seed, public = raw[:ED25519_SEED_BYTES], raw[ED25519_SEED_BYTES:]
    try:
        key = serialization.load_der_private_key(ED25519_PKCS8_PREFIX + seed, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise InvalidKeyMaterial(f"Could not import Ed25519 seed: {e}")

    derived = key.public_key().public_bytes(
        serialization.Encoding.Raw, serialization.PublicFormat.Raw
    )
    if derived != public:
        raise InvalidKeyMaterial("Ed25519 public key does not match the private seed")
    return key


def load_private_key(key_material: str, scheme: SigningScheme) -> PrivateKey:
    if scheme is SigningScheme.ES256:
        return load_es256_key(key_material)
    return load_ed25519_key(key_material)


# =============================================================================
# Token construction
# =============================================================================

def build_header(key_name: str, scheme: SigningScheme) -> dict:
    return {
        "alg": scheme.value,
        "kid": key_name,
        "typ": "JWT",
        "nonce": generate_nonce(),
    }


def build_claims(
    key_name: str,
    scheme: SigningScheme,
    method: str,
    path: str,
    host: str = DEFAULT_API_HOST,
    now: Optional[int] = None,
) -> dict:
    """Claims binding the token to exactly one method + path for 120 seconds."""
    if now is None:
        now = int(time.time())
    uri = f"{method.upper()} {host}{path}"

    claims = {
        "sub": key_name,
        "iss": ISSUER,
        "nbf": now,
        "exp": now + TOKEN_TTL_SECONDS,
    }
    if scheme is SigningScheme.ES256:
        claims["uri"] = uri
    else:
        claims["uris"] = [uri]
    return claims


def _sign_bytes(key: PrivateKey, signing_input: bytes) -> bytes:
    if isinstance(key, ec.EllipticCurvePrivateKey):
        der = key.sign(signing_input, ec.ECDSA(hashes.SHA256()))
        r, s = decode_dss_signature(der)
        return r.to_bytes(ES256_COORDINATE_BYTES, "big") + s.to_bytes(ES256_COORDINATE_BYTES, "big")
    return key.sign(signing_input)


def sign(
    key_name: str,
    key_material: str,
    scheme: SigningScheme,
    method: str,
    path: str,
    *,
    host: str = DEFAULT_API_HOST,
    now: Optional[int] = None,
) -> str:
    """
    Mint a compact JWT for one call to `method host+path`.

    Raises:
        InvalidKeyMaterial: the key does not decode into the scheme's shape
        SigningFailure: the signing primitive itself failed
    """
    key = load_private_key(key_material, scheme)

    header = build_header(key_name, scheme)
    claims = build_claims(key_name, scheme, method, path, host=host, now=now)
    signing_input = f"{_encode_segment(header)}.{_encode_segment(claims)}"

    try:
        signature = _sign_bytes(key, signing_input.encode())
    except Exception as e:
        raise SigningFailure(str(e) or e.__class__.__name__)

    return f"{signing_input}.{b64url_encode(signature)}"


# =============================================================================
# Decoding / verification
# =============================================================================

def decode_token(token: str) -> Tuple[dict, dict]:
    """Decode header and claims without checking the signature."""
    parts = token.split(".")
    if len(parts) != 3:
        raise ValueError("Invalid token format")
    header_b64, claims_b64, _ = parts
    return json.loads(b64url_decode(header_b64)), json.loads(b64url_decode(claims_b64))


def verify_token(token: str, public_key: PublicKey) -> Tuple[dict, dict]:
    """Verify an ES256 or EdDSA token and return its decoded header and claims."""
    header, claims = decode_token(token)
    header_b64, claims_b64, signature_b64 = token.split(".")
    signing_input = f"{header_b64}.{claims_b64}".encode()
    signature = b64url_decode(signature_b64)

    try:
        if isinstance(public_key, ec.EllipticCurvePublicKey):
            if header.get("alg") != SigningScheme.ES256.value:
                raise SigningFailure(f"Unexpected alg for EC key: {header.get('alg')}")
            if len(signature) != 2 * ES256_COORDINATE_BYTES:
                raise SigningFailure("ES256 signature must be 64 raw bytes")
            r = int.from_bytes(signature[:ES256_COORDINATE_BYTES], "big")
            s = int.from_bytes(signature[ES256_COORDINATE_BYTES:], "big")
            public_key.verify(encode_dss_signature(r, s), signing_input, ec.ECDSA(hashes.SHA256()))
        else:
            if header.get("alg") != SigningScheme.EDDSA.value:
                raise SigningFailure(f"Unexpected alg for Ed25519 key: {header.get('alg')}")
            public_key.verify(signature, signing_input)
    except InvalidSignature:
        raise SigningFailure("Signature verification failed")

    return header, claims
