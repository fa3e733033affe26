from __future__ import annotations

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa


def _private_pem(key) -> str:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def _public_pem(key) -> str:
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


class KeyPair:
    def __init__(self, key: rsa.RSAPrivateKey):
        self.key = key
        self.private_pem = _private_pem(key)
        self.public_pem = _public_pem(key)

    @property
    def private_raw(self) -> str:
        return _strip_envelope(self.private_pem)

    @property
    def public_raw(self) -> str:
        return _strip_envelope(self.public_pem)


def _strip_envelope(pem: str) -> str:
    return "".join(line for line in pem.strip().splitlines() if not line.startswith("-----"))


@pytest.fixture(scope="session")
def merchant() -> KeyPair:
    return KeyPair(rsa.generate_private_key(public_exponent=65537, key_size=2048))


@pytest.fixture(scope="session")
def gateway() -> KeyPair:
    return KeyPair(rsa.generate_private_key(public_exponent=65537, key_size=2048))


@pytest.fixture(scope="session")
def stranger() -> KeyPair:
    return KeyPair(rsa.generate_private_key(public_exponent=65537, key_size=2048))


@pytest.fixture(scope="session")
def ec_private_pem() -> str:
    return _private_pem(ec.generate_private_key(ec.SECP256R1()))


@pytest.fixture(scope="session")
def ec_public_pem() -> str:
    return _public_pem(ec.generate_private_key(ec.SECP256R1()))
