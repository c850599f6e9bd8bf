"""Trust chain certificates: reading, exporting, expiry checks and Helm values."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any

from cryptography import x509

from daprctl.printing import warning_status_event
from daprctl.resources import SYSTEM_CONFIG_NAME, Configuration
from daprctl.upgrade import parse_into

TRUST_BUNDLE_SECRET_NAME = "dapr-trust-bundle"
WARNING_DAYS_FOR_CERT_EXPIRY = 30

ROOT_CERT_KEY = "ca.crt"
ISSUER_CERT_KEY = "issuer.crt"
ISSUER_KEY_KEY = "issuer.key"

_HELP_MESSAGE = (
    "Please see docs.dapr.io for certificate renewal instructions "
    "to avoid service interruptions."
)
_RFC1123 = "%a, %d %b %Y %H:%M:%S UTC"
_PEM_BEGIN = b"-----BEGIN "


def parse_certificate_files(
    root_cert: str | os.PathLike[str],
    issuer_cert: str | os.PathLike[str],
    issuer_key: str | os.PathLike[str],
) -> tuple[bytes, bytes, bytes]:
    """Read the root certificate, issuer certificate and issuer key files."""
    return (
        Path(root_cert).read_bytes(),
        Path(issuer_cert).read_bytes(),
        Path(issuer_key).read_bytes(),
    )


def create_helm_params_for_new_certificates(
    ca: str, issuer_cert: str, issuer_key: str
) -> dict[str, Any]:
    """Build Helm values that replace the sentry's trust chain.

    Raises ValueError unless all three values are given.
    """
    if not (ca and issuer_cert and issuer_key):
        raise ValueError("parameters not found")
    values: dict[str, Any] = {}
    for expression in (
        f"dapr_sentry.tls.root.certPEM={ca}",
        f"dapr_sentry.tls.issuer.certPEM={issuer_cert}",
        f"dapr_sentry.tls.issuer.keyPEM={issuer_key}",
    ):
        parse_into(expression, values)
    return values


def _not_after(cert: x509.Certificate) -> datetime:
    aware = getattr(cert, "not_valid_after_utc", None)
    if aware is not None:
        return aware
    return cert.not_valid_after.replace(tzinfo=timezone.utc)


def certificate_expiry(ca_pem: bytes | None) -> datetime:
    """Return the expiry time, in UTC, of a PEM encoded root certificate."""
    if ca_pem is None:
        raise LookupError("root certificate not loaded yet, please try again in few minutes")
    if _PEM_BEGIN not in ca_pem:
        raise ValueError("root certificate is not pem encoded")
    cert = x509.load_pem_x509_certificate(ca_pem)
    return _not_after(cert)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def cert_expiry_warning(expiry: datetime, now: datetime | None = None) -> str | None:
    """Return a warning when the root certificate expires within the warning window."""
    expiry = _as_utc(expiry)
    now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    days_remaining = int((expiry - now).total_seconds() / 3600 / 24)
    if days_remaining >= WARNING_DAYS_FOR_CERT_EXPIRY:
        return None
    if days_remaining == 0:
        warning = "Dapr root certificate of your Kubernetes cluster expires today."
    elif days_remaining < 0:
        warning = "Dapr root certificate of your Kubernetes cluster has expired."
    else:
        warning = (
            f"Dapr root certificate of your Kubernetes cluster expires in {days_remaining} days."
        )
    return f"{warning} Expiry date: {expiry.strftime(_RFC1123)}. \n {_HELP_MESSAGE}"


def _report_expiry(expiry: datetime, stream: IO[str] | None = None) -> None:
    message = cert_expiry_warning(expiry)
    if message is not None:
        warning_status_event(stream if stream is not None else sys.stdout, message)


def export_trust_chain(output_dir: str | os.PathLike[str], secret_data: Mapping[str, bytes]) -> None:
    """Write the root certificate, issuer certificate and issuer key into a directory."""
    directory = Path(output_dir)
    if not directory.exists():
        directory.mkdir(mode=0o755, parents=True)
    for key in (ROOT_CERT_KEY, ISSUER_CERT_KEY, ISSUER_KEY_KEY):
        target = directory / key
        fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as handle:
            handle.write(secret_data.get(key) or b"")


def find_system_config(configurations: Iterable[Configuration]) -> Configuration:
    """Return the system configuration among the given configurations."""
    for configuration in configurations:
        if configuration.name == SYSTEM_CONFIG_NAME:
            return configuration
    raise LookupError("system configuration not found")