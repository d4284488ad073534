"""
CA loader adapter — reads the root CA pair from disk.

Adapter layer — implements the TrustMaterialSource port using cryptography
for PEM decoding. Both PKCS#8 (`PRIVATE KEY`) and PKCS#1
(`RSA PRIVATE KEY`) key files are accepted.

Validation performed (the configured root is otherwise trusted):
  1. both files readable        → else CA_FILE_READ_ERROR
  2. both decode, key matches   → else CA_PARSE_ERROR
  3. BasicConstraints ca=True   → else NOT_A_CA
"""

from __future__ import annotations

from pathlib import Path

import structlog
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat, load_pem_private_key

from tlsgen.domain.models import LoadedCA, MaterialPaths
from tlsgen.railway import ErrorCode, Result

log = structlog.get_logger()


def _read(path: Path, what: str) -> Result[bytes]:
    return Result.from_computation(
        path.read_bytes,
        ErrorCode.CA_FILE_READ_ERROR,
        f"Could not read root CA {what} {str(path)!r}",
    )


def _public_der(key: PublicKeyTypes) -> bytes:
    return key.public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo)


def _decode_pair(cert_pem: bytes, key_pem: bytes) -> LoadedCA:
    """Decode both PEM blobs and check they belong together. May raise."""
    certificate = x509.load_pem_x509_certificate(cert_pem)
    private_key = load_pem_private_key(key_pem, password=None)
    if _public_der(private_key.public_key()) != _public_der(certificate.public_key()):
        raise ValueError("Private key does not match the public key of the root CA certificate")
    return LoadedCA(private_key=private_key, certificate=certificate)  # type: ignore[arg-type]


def is_ca_certificate(certificate: x509.Certificate) -> bool:
    """True if the certificate carries BasicConstraints with ca=True."""
    try:
        return certificate.extensions.get_extension_for_class(x509.BasicConstraints).value.ca
    except x509.ExtensionNotFound:
        return False


class FileCALoader:
    """
    Load the root CA certificate/key pair from fixed paths.

    Implements the TrustMaterialSource port.
    """

    def __init__(self, paths: MaterialPaths) -> None:
        self._paths = paths

    def load(self) -> Result[LoadedCA]:
        cert_path, key_path = self._paths.cert_path, self._paths.key_path
        return (
            _read(cert_path, "certificate")
            .flat_map(lambda cert_pem: _read(key_path, "private key").map(lambda key_pem: (cert_pem, key_pem)))
            .flat_map(
                lambda pems: Result.from_computation(
                    lambda: _decode_pair(*pems),
                    ErrorCode.CA_PARSE_ERROR,
                    f"Could not decode root CA material from {str(cert_path.parent)!r}",
                )
            )
            .ensure(
                lambda ca: is_ca_certificate(ca.certificate),
                ErrorCode.NOT_A_CA,
                f"{str(cert_path)!r} is not a CA certificate",
            )
            .peek(
                lambda ca: log.info(
                    "ca_loader.loaded",
                    subject=ca.subject.rfc4514_string(),
                    serial=hex(ca.certificate.serial_number),
                    not_after=ca.certificate.not_valid_after_utc.isoformat(),
                )
            )
        )
