"""
Filesystem material store — writes a PEM key/certificate pair.

Adapter layer — implements the MaterialStore port.

Write order and permissions:
  1. parent directories  (created as needed, 0700)  → DIRECTORY_CREATE_ERROR
  2. private key         (PKCS#8 `PRIVATE KEY`, 0600) → FILE_WRITE_ERROR
  3. certificate         (`CERTIFICATE`, 0644)        → FILE_WRITE_ERROR

Existing files are truncated and replaced, and their mode is reset.
There is no rollback: if step 3 fails, the new key stays on disk next to
the previous certificate (or none).
"""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

import structlog

from tlsgen.domain.models import KeyPair, MaterialPaths, SignedCertificate
from tlsgen.railway import ErrorCode, Result

log = structlog.get_logger()

DIRECTORY_MODE = 0o700
KEY_FILE_MODE = 0o600
CERT_FILE_MODE = 0o644


def _opener(mode: int) -> Callable[[str, int], int]:
    def _open(path: str, flags: int) -> int:
        return os.open(path, flags, mode)

    return _open


def _write_file(path: Path, data: bytes, mode: int) -> Path:
    # the mode passed to os.open only applies to newly created files
    with open(path, "wb", opener=_opener(mode)) as fh:
        os.fchmod(fh.fileno(), mode)
        fh.write(data)
    return path


def _make_directories(paths: MaterialPaths) -> MaterialPaths:
    for directory in paths.directories:
        directory.mkdir(mode=DIRECTORY_MODE, parents=True, exist_ok=True)
    return paths


class FilesystemMaterialStore:
    """
    Persist key and certificate PEM files.

    Implements the MaterialStore port.
    All exceptions are caught at this adapter boundary via Result.from_computation().
    """

    def store(
        self,
        certificate: SignedCertificate,
        key_pair: KeyPair,
        paths: MaterialPaths,
    ) -> Result[MaterialPaths]:
        return (
            Result.from_computation(
                lambda: _make_directories(paths),
                ErrorCode.DIRECTORY_CREATE_ERROR,
                f"Couldn't create TLS directory for {str(paths.key_path)!r}",
            )
            .flat_map(
                lambda _: Result.from_computation(
                    lambda: _write_file(paths.key_path, key_pair.private_pem(), KEY_FILE_MODE),
                    ErrorCode.FILE_WRITE_ERROR,
                    f"Couldn't write private key file {str(paths.key_path)!r}",
                )
            )
            .flat_map(
                lambda _: Result.from_computation(
                    lambda: _write_file(paths.cert_path, certificate.pem(), CERT_FILE_MODE),
                    ErrorCode.FILE_WRITE_ERROR,
                    f"Couldn't write certificate file {str(paths.cert_path)!r}",
                )
            )
            .map(lambda _: paths)
            .peek(
                lambda written: log.info(
                    "store.written",
                    certificate=str(written.cert_path),
                    private_key=str(written.key_path),
                )
            )
        )
