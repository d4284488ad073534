"""Key pair generation — one fresh RSA key per issuance run."""

from __future__ import annotations

import structlog
from cryptography.hazmat.primitives.asymmetric import rsa

from tlsgen.domain.models import KeyPair
from tlsgen.railway import ErrorCode, Result

log = structlog.get_logger()

PUBLIC_EXPONENT = 65537


def generate_key_pair(key_size: int = 2048) -> Result[KeyPair]:
    """
    Generate an RSA key pair from the OS CSPRNG.

    Never reuses material: every call returns an independent key.
    Returns Result.failure(KEY_GENERATION_ERROR, ...) if the backend rejects
    the parameters or the random source fails.
    """
    return Result.from_computation(
        lambda: KeyPair(rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=key_size)),
        ErrorCode.KEY_GENERATION_ERROR,
        f"Could not generate a {key_size}-bit RSA private key",
    ).peek(lambda pair: log.debug("keys.generated", algorithm="RSA", key_size=pair.key_size))
