"""
Pipeline — the two issuance railways.

Root bootstrap:

  generate_key_pair()
    → build_template(is_root=True)
      → sign(template, SelfIssuer)
        → store(ca paths)

Leaf issuance:

  ca_source.load()
    → workload_identity()
      → generate_key_pair()
        → build_template(is_root=False, workload_id)
          → sign(template, LoadedCA)
            → store(client paths)

The workload ID comes from a caller-supplied resolver. Each stage
returns Result[T]; the first failure short-circuits the rest and is
returned unchanged.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from tlsgen.config import IssuanceSettings
from tlsgen.domain.keys import generate_key_pair
from tlsgen.domain.models import (
    IssuedMaterial,
    IssuerContext,
    KeyPair,
    MaterialPaths,
    SelfIssuer,
    SignedCertificate,
)
from tlsgen.domain.ports import MaterialStore, TrustMaterialSource
from tlsgen.domain.signer import sign
from tlsgen.domain.templates import build_template
from tlsgen.railway import Result


def _persist(
    store: MaterialStore,
    signed: SignedCertificate,
    key_pair: KeyPair,
    paths: MaterialPaths,
) -> Result[IssuedMaterial]:
    return store.store(signed, key_pair, paths).map(
        lambda written: IssuedMaterial(certificate=signed, paths=written)
    )


def _issue(
    is_root: bool,
    workload_id: str,
    issuer: IssuerContext,
    store: MaterialStore,
    paths: MaterialPaths,
    settings: IssuanceSettings,
    now: datetime | None,
) -> Result[IssuedMaterial]:
    """Shared tail of both railways: key → template → signature → files."""
    return generate_key_pair(settings.key_size).flat_map(
        lambda key_pair: build_template(is_root, workload_id, settings, now)
        .flat_map(lambda template: sign(template, issuer, key_pair, settings.enforce_ca_validity))
        .flat_map(lambda signed: _persist(store, signed, key_pair, paths))
    )


def bootstrap_root(
    store: MaterialStore,
    paths: MaterialPaths,
    settings: IssuanceSettings,
    now: datetime | None = None,
) -> Result[IssuedMaterial]:
    """
    Create a self-signed root CA and write it to `paths`.

    Run once, typically while building the image.
    """
    return _issue(True, "", SelfIssuer(), store, paths, settings, now)


def issue_leaf(
    ca_source: TrustMaterialSource,
    store: MaterialStore,
    workload_identity: Callable[[], str],
    paths: MaterialPaths,
    settings: IssuanceSettings,
    now: datetime | None = None,
) -> Result[IssuedMaterial]:
    """
    Issue a short-lived workload certificate signed by the loaded CA.

    `workload_identity` is only consulted once the CA has loaded; nothing is
    resolved, generated or written if the CA cannot be loaded.
    """
    return ca_source.load().flat_map(
        lambda ca: _issue(False, workload_identity(), ca, store, paths, settings, now)
    )
