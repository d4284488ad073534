"""
Application entry point — parses the mode, wires adapters, runs one issuance.

Composition root: the only place where concrete adapters are created and
where the workload identity is read from the environment.

    tlsgen-dev --root            # bootstrap ./ca/root.pem + ./ca/root.key
    tlsgen-dev                   # issue /tmp/tls/client/client.pem + client-key.pem

Exit status is 0 when both files of the requested mode were written,
1 on any failure.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

import structlog

from tlsgen import __version__
from tlsgen.adapters.ca_loader import FileCALoader
from tlsgen.adapters.material_store import FilesystemMaterialStore
from tlsgen.config import AppSettings
from tlsgen.domain.identity import resolve_workload_id
from tlsgen.domain.models import IssuedMaterial
from tlsgen.pipeline import bootstrap_root, issue_leaf
from tlsgen.railway import ErrorCode, FailureDescription, Result


def configure_structlog(log_level: str = "INFO") -> None:
    """Configure structlog for human-readable console output on stderr."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tlsgen-dev",
        description="Generate mTLS certificate material for development workloads.",
    )
    parser.add_argument("--root", action="store_true", help="Should we generate a root CA instead?")
    parser.add_argument("--out", type=Path, default=None, help="Output directory for --root (default: settings)")
    parser.add_argument("--log-level", default=None, help="Override TLSGEN_LOG_LEVEL")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def _workload_identity() -> str:
    workload_id = resolve_workload_id()
    structlog.get_logger().info("app.workload_identity", workload_id=workload_id)
    return workload_id


def _run_root(settings: AppSettings, out: Path | None) -> tuple[Path, Result[IssuedMaterial]]:
    base = out if out is not None else settings.root_output_dir
    return base, bootstrap_root(
        store=FilesystemMaterialStore(),
        paths=settings.layout.ca_paths(base),
        settings=settings.issuance,
    )


def _run_leaf(settings: AppSettings) -> tuple[Path, Result[IssuedMaterial]]:
    base = settings.tls_dir
    return base, issue_leaf(
        ca_source=FileCALoader(settings.layout.ca_paths(base)),
        store=FilesystemMaterialStore(),
        workload_identity=_workload_identity,
        paths=settings.layout.client_paths(base),
        settings=settings.issuance,
    )


def _report_success(directory: Path, issued: IssuedMaterial) -> int:
    structlog.get_logger().info(
        "app.material_generated",
        directory=str(directory),
        subject=issued.certificate.certificate.subject.rfc4514_string(),
        not_after=issued.certificate.certificate.not_valid_after_utc.isoformat(),
    )
    return 0


def _report_failure(error: FailureDescription) -> int:
    log = structlog.get_logger()
    log.error(
        "app.issuance_failed",
        code=error.code.value,
        error=error.message,
        cause=repr(error.exception) if error.exception is not None else None,
    )
    if error.exception is not None:
        log.debug("app.failure_trace", trace=error.full_stack_trace())
    return 1


def _load_settings() -> Result[AppSettings]:
    return Result.from_computation(
        AppSettings,
        ErrorCode.CONFIGURATION_ERROR,
        "Configuration error",
    ).peek_failure(lambda error: print(f"FATAL: {error}", file=sys.stderr))  # noqa: T201


def run(argv: Sequence[str] | None = None) -> int:
    """Run one issuance and return the process exit status."""
    args = _parse_args(argv)
    loaded = _load_settings()
    if loaded.is_failure():
        return 1
    settings = loaded.value()

    configure_structlog(args.log_level or settings.log_level)
    log = structlog.get_logger()
    log.info("app.starting", version=__version__, mode="root" if args.root else "leaf")

    directory, result = _run_root(settings, args.out) if args.root else _run_leaf(settings)

    return result.either(
        on_success=lambda issued: _report_success(directory, issued),
        on_failure=_report_failure,
    )


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
