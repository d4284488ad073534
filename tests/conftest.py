"""
Shared test fixtures and helpers for the tlsgen test suite.

CA material used as *input* (loader and signer tests) is built here
directly with cryptography, independently of the code under test.
RSA keys are session-scoped: generating them dominates test time.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import structlog
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from tlsgen.config import IssuanceSettings, TlsLayout
from tlsgen.domain.models import KeyPair, LoadedCA, MaterialPaths


def new_key_pair() -> KeyPair:
    return KeyPair(rsa.generate_private_key(public_exponent=65537, key_size=2048))


def make_certificate(
    key_pair: KeyPair,
    *,
    is_ca: bool | None = True,
    organization: str = "Test ROOT CA",
    not_before: datetime | None = None,
    validity: timedelta = timedelta(days=30),
    subject_key_identifier: bytes | None = None,
) -> x509.Certificate:
    """
    Self-signed certificate for `key_pair`.

    is_ca=None omits the BasicConstraints extension entirely.
    subject_key_identifier adds an SKI extension with exactly those bytes.
    """
    start = not_before or datetime.now(UTC).replace(microsecond=0) - timedelta(minutes=5)
    name = x509.Name([x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization)])
    builder = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key_pair.public_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(start)
        .not_valid_after(start + validity)
    )
    if is_ca is not None:
        builder = builder.add_extension(x509.BasicConstraints(ca=is_ca, path_length=None), critical=True)
    if subject_key_identifier is not None:
        builder = builder.add_extension(x509.SubjectKeyIdentifier(subject_key_identifier), critical=False)
    return builder.sign(private_key=key_pair.private_key, algorithm=hashes.SHA256())


def write_pair(
    certificate: x509.Certificate,
    key_pair: KeyPair,
    paths: MaterialPaths,
    key_format: serialization.PrivateFormat = serialization.PrivateFormat.PKCS8,
) -> MaterialPaths:
    """Write a certificate/key pair as PEM, creating parent directories."""
    paths.cert_path.parent.mkdir(parents=True, exist_ok=True)
    paths.key_path.parent.mkdir(parents=True, exist_ok=True)
    paths.cert_path.write_bytes(certificate.public_bytes(serialization.Encoding.PEM))
    paths.key_path.write_bytes(
        key_pair.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=key_format,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return paths


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo structlog configuration made by a test (it binds the test's captured stderr)."""
    yield
    structlog.reset_defaults()


@pytest.fixture(scope="session")
def ca_key_pair() -> KeyPair:
    """RSA key of the test root CA."""
    return new_key_pair()


@pytest.fixture(scope="session")
def leaf_key_pair() -> KeyPair:
    """RSA key used as the subject key of issued test certificates."""
    return new_key_pair()


@pytest.fixture(scope="session")
def loaded_ca(ca_key_pair: KeyPair) -> LoadedCA:
    """A valid CA issuer, valid from five minutes ago for 30 days."""
    return LoadedCA(private_key=ca_key_pair.private_key, certificate=make_certificate(ca_key_pair))


@pytest.fixture()
def issuance_settings() -> IssuanceSettings:
    """Default issuance settings (My Dev org, local.dev, 4h / 10y)."""
    return IssuanceSettings()


@pytest.fixture()
def ca_paths(tmp_path: Path) -> MaterialPaths:
    """Root CA paths under a fresh temporary base directory."""
    return TlsLayout().ca_paths(tmp_path)


@pytest.fixture()
def client_paths(tmp_path: Path) -> MaterialPaths:
    """Leaf paths under a fresh temporary base directory."""
    return TlsLayout().client_paths(tmp_path)
