import base64

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519

from app.lib.settings import Settings, SigningScheme


@pytest.fixture
def ec_private_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def es256_pem(ec_private_key):
    return ec_private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()


@pytest.fixture
def ed25519_private_key():
    return ed25519.Ed25519PrivateKey.generate()


@pytest.fixture
def ed25519_material(ed25519_private_key):
    """base64(seed || public key), the format CDP issues Ed25519 secrets in."""
    seed = ed25519_private_key.private_bytes(
        serialization.Encoding.Raw,
        serialization.PrivateFormat.Raw,
        serialization.NoEncryption(),
    )
    public = ed25519_private_key.public_key().public_bytes(
        serialization.Encoding.Raw, serialization.PublicFormat.Raw
    )
    return base64.b64encode(seed + public).decode()


@pytest.fixture
def es256_settings(es256_pem):
    return Settings(
        key_name="organizations/org-1/apiKeys/key-1",
        private_key=es256_pem,
        scheme=SigningScheme.ES256,
    )


@pytest.fixture
def eddsa_settings(ed25519_material):
    return Settings(
        key_name="key-ed",
        private_key=ed25519_material,
        scheme=SigningScheme.EDDSA,
    )
