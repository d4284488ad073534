"""
Ports — Protocol-based interfaces for the filesystem collaborators.

The issuance pipeline only sees these contracts; the filesystem adapters
satisfy them structurally, and tests swap in fakes:

  TrustMaterialSource ← FileCALoader             (reads the CA pair)
  MaterialStore       ← FilesystemMaterialStore  (writes a key + cert pair)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tlsgen.domain.models import KeyPair, LoadedCA, MaterialPaths, SignedCertificate
from tlsgen.railway import Result


@runtime_checkable
class TrustMaterialSource(Protocol):
    """
    Port: provide the CA that signs leaf certificates.

    Implementations must fail with NOT_A_CA when the certificate does not
    assert the CA basic constraint. No chain or expiry validation.
    """

    def load(self) -> Result[LoadedCA]: ...


@runtime_checkable
class MaterialStore(Protocol):
    """
    Port: persist a private key and its certificate.

    Writes the key first, then the certificate; existing files are replaced.
    Returns the paths written on success.
    """

    def store(
        self,
        certificate: SignedCertificate,
        key_pair: KeyPair,
        paths: MaterialPaths,
    ) -> Result[MaterialPaths]: ...
