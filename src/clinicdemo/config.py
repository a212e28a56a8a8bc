"""Store and CLI configuration settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from urllib.parse import urlparse

from dotenv import load_dotenv

from .errors import ConfigError

_LOCAL_HOSTS = ("localhost", "127.0.0.1", "::1")


@dataclass
class StoreConfig:
    """Configuration for reaching the clinical-records store."""

    # Remote FHIR server
    url: str = ""
    client_id: str = ""
    client_secret: str = ""
    tenant: str = ""
    store: str = ""
    timeout: float = 30.0

    # Local JSON store (used with --local)
    data_dir: str = "data/fhir"

    # Patient summary fan-out bound; None waits for the slowest call
    summary_timeout: float | None = None

    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> StoreConfig:
        """Load configuration from environment variables (and a .env file)."""
        load_dotenv()
        summary_timeout = os.getenv("CLINIC_SUMMARY_TIMEOUT", "")
        return cls(
            url=os.getenv("CLINIC_STORE_URL", "").rstrip("/"),
            client_id=os.getenv("CLINIC_STORE_CLIENT_ID", ""),
            client_secret=os.getenv("CLINIC_STORE_CLIENT_SECRET", ""),
            tenant=os.getenv("CLINIC_STORE_TENANT", ""),
            store=os.getenv("CLINIC_STORE_NAME", ""),
            timeout=float(os.getenv("CLINIC_STORE_TIMEOUT", "30")),
            data_dir=os.getenv("CLINIC_DATA_DIR", "data/fhir"),
            summary_timeout=float(summary_timeout) if summary_timeout else None,
            log_level=os.getenv("CLINIC_LOG_LEVEL", "WARNING").upper(),
        )

    def validate(self) -> None:
        """Check the remote settings. Raises ConfigError if any are missing."""
        required = {
            "CLINIC_STORE_URL": self.url,
            "CLINIC_STORE_CLIENT_ID": self.client_id,
            "CLINIC_STORE_CLIENT_SECRET": self.client_secret,
            "CLINIC_STORE_TENANT": self.tenant,
            "CLINIC_STORE_NAME": self.store,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigError(
                f"missing required environment variables: {', '.join(missing)}"
            )
        validate_store_url(self.url)


def validate_store_url(raw_url: str) -> None:
    """Require an absolute https URL (plain http only for localhost)."""
    parsed = urlparse(raw_url)
    if not parsed.scheme or not parsed.netloc:
        raise ConfigError("invalid CLINIC_STORE_URL: must be an absolute URL")

    scheme = parsed.scheme.lower()
    if scheme == "https":
        return
    if scheme == "http" and (parsed.hostname or "").lower() in _LOCAL_HOSTS:
        return

    raise ConfigError(
        "invalid CLINIC_STORE_URL: must use https (http is only allowed for localhost)"
    )
