"""
Certificate signer — template + issuer + subject key → DER certificate.

Signing uses:
  - cryptography (PyCA): CertificateBuilder, SHA-256 signature
  - asn1crypto: independent strict DER decode of the output

The freshly signed bytes are decoded again by both libraries before they
count as output. This is a self-consistency check against a corrupt
encoding, not a trust decision.
"""

from __future__ import annotations

import structlog
from asn1crypto import x509 as asn1_x509
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.x509.oid import NameOID

from tlsgen.domain.models import (
    CertificateTemplate,
    IssuerContext,
    KeyPair,
    LeafTemplateSpec,
    LoadedCA,
    SelfIssuer,
    SignedCertificate,
)
from tlsgen.railway import ErrorCode, Result

log = structlog.get_logger()

SIGNATURE_HASH = hashes.SHA256


def _subject_name(template: CertificateTemplate) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.ORGANIZATION_NAME, template.organization)])


def _authority_key_identifier(ca_cert: x509.Certificate) -> x509.AuthorityKeyIdentifier:
    """AKI pointing at the CA's own SKI; derived from its key only when it carries none."""
    try:
        ski = ca_cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier).value
    except x509.ExtensionNotFound:
        return x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_cert.public_key())  # type: ignore[arg-type]
    return x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ski)


def _build_certificate(
    template: CertificateTemplate,
    issuer: IssuerContext,
    key_pair: KeyPair,
) -> x509.Certificate:
    """Assemble and sign. May raise; the caller captures it as SIGNING_ERROR."""
    subject = _subject_name(template)
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .public_key(key_pair.public_key)
        .serial_number(template.serial_number)
        .not_valid_before(template.not_before)
        .not_valid_after(template.not_after)
        .add_extension(x509.BasicConstraints(ca=template.is_ca, path_length=None), critical=True)
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(key_pair.public_key), critical=False)
    )

    match template:
        case LeafTemplateSpec():
            builder = (
                builder.add_extension(template.key_usage, critical=True)
                .add_extension(x509.ExtendedKeyUsage(list(template.extended_key_usage)), critical=False)
                .add_extension(
                    x509.SubjectAlternativeName([x509.UniformResourceIdentifier(template.spiffe_id)]),
                    critical=False,
                )
            )

    match issuer:
        case SelfIssuer():
            builder = builder.issuer_name(subject)
            signing_key = key_pair.private_key
        case LoadedCA(private_key=ca_key, certificate=ca_cert):
            builder = builder.issuer_name(ca_cert.subject).add_extension(
                _authority_key_identifier(ca_cert), critical=False
            )
            signing_key = ca_key

    return builder.sign(private_key=signing_key, algorithm=SIGNATURE_HASH())


def _decode_again(template: CertificateTemplate, der: bytes) -> SignedCertificate:
    """Strict re-decode of `der`; raises if either decoder rejects it."""
    parsed = asn1_x509.Certificate.load(der, strict=True)
    _ = parsed.native  # forces a full parse of every field
    if parsed.serial_number != template.serial_number:
        raise ValueError("Decoded serial number differs from the template")
    return SignedCertificate(der=der, certificate=x509.load_der_x509_certificate(der))


def _check_ca_window(
    template: CertificateTemplate,
    issuer: IssuerContext,
    enforce_ca_validity: bool,
) -> Result[IssuerContext]:
    """Fail when a CA-signed certificate would outlive (or predate) its CA."""
    match issuer:
        case LoadedCA(certificate=ca_cert) if enforce_ca_validity:
            ca_start, ca_end = ca_cert.not_valid_before_utc, ca_cert.not_valid_after_utc
            if template.not_before < ca_start or template.not_after > ca_end:
                return Result.failure(
                    ErrorCode.CA_VALIDITY_ERROR,
                    f"Validity window {template.not_before.isoformat()} → {template.not_after.isoformat()} "
                    f"is outside the CA window {ca_start.isoformat()} → {ca_end.isoformat()}",
                )
    return Result.success(issuer)


def sign(
    template: CertificateTemplate,
    issuer: IssuerContext,
    key_pair: KeyPair,
    enforce_ca_validity: bool = True,
) -> Result[SignedCertificate]:
    """
    Sign `template` for `key_pair`'s public key under `issuer`.

    SelfIssuer → self-signed (the new key signs its own template).
    LoadedCA   → issuer name from the CA certificate, signature by the CA key.

    Failures:
      - CA_VALIDITY_ERROR when the window is outside the CA's (if enforced)
      - SIGNING_ERROR when the builder or the signature fails
      - GENERATED_CERTIFICATE_INVALID when the output does not decode
    """
    return (
        _check_ca_window(template, issuer, enforce_ca_validity)
        .flat_map(
            lambda ctx: Result.from_computation(
                lambda: _build_certificate(template, ctx, key_pair),
                ErrorCode.SIGNING_ERROR,
                "Could not generate the new certificate",
            )
        )
        .flat_map(
            lambda cert: Result.from_computation(
                lambda: _decode_again(template, cert.public_bytes(Encoding.DER)),
                ErrorCode.GENERATED_CERTIFICATE_INVALID,
                "Generated certificate contains errors",
            )
        )
        .peek(
            lambda signed: log.info(
                "signer.signed",
                serial=hex(signed.certificate.serial_number),
                subject=signed.certificate.subject.rfc4514_string(),
                issuer=signed.certificate.issuer.rfc4514_string(),
                not_after=signed.certificate.not_valid_after_utc.isoformat(),
            )
        )
    )
