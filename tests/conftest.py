import base64
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa


def _keypair():
    sk = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pk = sk.public_key()
    priv_der = sk.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )
    pub_der = pk.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    pub_pem = pk.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return SimpleNamespace(
        sk=sk,
        private_der_b64=base64.b64encode(priv_der).decode(),
        public_der_b64=base64.b64encode(pub_der).decode(),
        public_pem=pub_pem,
    )


@pytest.fixture(scope="session")
def keys():
    return _keypair()


@pytest.fixture(scope="session")
def other_keys():
    return _keypair()


@pytest.fixture
def now():
    return datetime(2024, 1, 1, tzinfo=timezone.utc)
