"""
Certificate template builder — one builder, two variants.

Root and leaf share the serial draw and the start of the validity window,
so both come out of build_template; only the horizon and the
identity-bearing fields differ:

  is_root=True   → RootTemplateSpec("<org> ROOT CA", now → now + root_validity)
  is_root=False  → LeafTemplateSpec("<org>", now → now + leaf_validity, spiffe://...)
"""

from __future__ import annotations

import secrets
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from tlsgen.domain.identity import is_well_formed_spiffe_id, spiffe_id
from tlsgen.domain.models import CertificateTemplate, LeafTemplateSpec, RootTemplateSpec
from tlsgen.railway import ErrorCode, Result

if TYPE_CHECKING:
    from tlsgen.config import IssuanceSettings

SERIAL_NUMBER_BITS = 128
ROOT_ORGANIZATION_SUFFIX = " ROOT CA"


def draw_serial_number() -> int:
    """Uniform random integer in [0, 2**128)."""
    return secrets.randbelow(1 << SERIAL_NUMBER_BITS)


def _utc_now() -> datetime:
    # whole seconds: X.509 time encodings drop fractions
    return datetime.now(UTC).replace(microsecond=0)


def build_template(
    is_root: bool,
    workload_id: str,
    settings: IssuanceSettings,
    now: datetime | None = None,
    draw_serial: Callable[[], int] = draw_serial_number,
) -> Result[CertificateTemplate]:
    """
    Build the unsigned descriptor for a root or a leaf certificate.

    Failures:
      - SERIAL_GENERATION_ERROR if the random draw fails
      - INVALID_IDENTITY_URI if the leaf SPIFFE ID is not a well-formed URI
    """
    not_before = now if now is not None else _utc_now()

    serial = Result.from_computation(
        draw_serial,
        ErrorCode.SERIAL_GENERATION_ERROR,
        "Failed to generate certificate serial number",
    )

    if is_root:
        return serial.map(
            lambda serial_number: RootTemplateSpec(
                serial_number=serial_number,
                organization=settings.organization + ROOT_ORGANIZATION_SUFFIX,
                not_before=not_before,
                not_after=not_before + settings.root_validity,
            )
        )

    identity = spiffe_id(settings.spiffe_domain, workload_id)
    return serial.ensure(
        lambda _: is_well_formed_spiffe_id(identity),
        ErrorCode.INVALID_IDENTITY_URI,
        f"Invalid SPIFFE ID {identity!r}",
    ).map(
        lambda serial_number: LeafTemplateSpec(
            serial_number=serial_number,
            organization=settings.organization,
            not_before=not_before,
            not_after=not_before + settings.leaf_validity,
            spiffe_id=identity,
        )
    )
