"""
Configuration — typed, validated settings loaded from environment/.env.

Uses pydantic-settings so every fixed path and constant of the tool is an
explicit, overridable value instead of a module global:
  - TLSGEN_TLS_DIR=/var/run/tls moves the leaf input/output tree
  - TLSGEN_ISSUANCE__ORGANIZATION="Team X" changes the subject organization
  - TLSGEN_LAYOUT__CLIENT_CERT=client/tls.crt renames a single file

Tests build AppSettings directly with temporary directories.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tlsgen.domain.models import MaterialPaths

_ENV_FILE = Path(__file__).parent.parent.parent / ".env"


class TlsLayout(BaseModel):
    """
    Relative locations of the four PEM files under a base directory.

    The leaf mode reads the CA from the same relative paths the root mode
    writes to, so a CA mounted at <tls_dir>/ca overrides the baked-in one.
    """

    ca_cert: str = Field(default="ca/root.pem", description="Root CA certificate")
    ca_key: str = Field(default="ca/root.key", description="Root CA private key")
    client_cert: str = Field(default="client/client.pem", description="Leaf certificate")
    client_key: str = Field(default="client/client-key.pem", description="Leaf private key")

    @field_validator("ca_cert", "ca_key", "client_cert", "client_key")
    @classmethod
    def validate_relative(cls, value: str) -> str:
        """Reject absolute paths and parent traversal; the base directory decides the root."""
        path = PurePosixPath(value)
        if not value or path.is_absolute() or ".." in path.parts:
            raise ValueError(f"Layout paths must be relative and stay under the base directory, got {value!r}")
        return value

    def ca_paths(self, base: Path) -> MaterialPaths:
        return MaterialPaths(cert_path=base / self.ca_cert, key_path=base / self.ca_key)

    def client_paths(self, base: Path) -> MaterialPaths:
        return MaterialPaths(cert_path=base / self.client_cert, key_path=base / self.client_key)


class IssuanceSettings(BaseModel):
    """Subject, identity and validity parameters shared by both modes."""

    organization: str = Field(default="My Dev org", min_length=1)
    spiffe_domain: str = Field(default="local.dev", min_length=1)
    leaf_validity: timedelta = Field(default=timedelta(hours=4))
    root_validity: timedelta = Field(default=timedelta(days=365 * 10))
    key_size: int = Field(default=2048, ge=2048)
    enforce_ca_validity: bool = Field(
        default=True,
        description="Refuse to issue a leaf whose validity window exceeds the CA's",
    )

    @field_validator("leaf_validity", "root_validity")
    @classmethod
    def validate_positive(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError(f"Validity must be positive, got {value}")
        return value


class AppSettings(BaseSettings):
    """
    Root application settings.

    Load order (highest priority first):
      1. Environment variables (TLSGEN_ prefix)
      2. .env file
      3. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="TLSGEN_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    tls_dir: Path = Field(default=Path("/tmp/tls"), description="Leaf mode base directory")
    root_output_dir: Path = Field(default=Path("."), description="Root mode base directory")
    layout: TlsLayout = Field(default_factory=TlsLayout)
    issuance: IssuanceSettings = Field(default_factory=IssuanceSettings)
    log_level: str = Field(default="INFO")
