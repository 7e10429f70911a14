"""Configuration for the phone import service.

Settings come from environment variables (a local .env file is loaded
first). Per-domain deployment policies come from the system YAML config:

    domains:
      - name: office.example.com
        require_user: true
      - name: lab.example.com
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from .domain.entities import DomainPolicy

load_dotenv()

logger = logging.getLogger(__name__)


def _split(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


@dataclass
class ImportConfig:
    """Service settings."""

    # PostgreSQL connection string for the device registry
    database_url: Optional[str] = field(default_factory=lambda: os.getenv("DATABASE_URL"))

    # Vendor/model catalog directory (vendor.yaml + models/*.yaml)
    catalog_dir: str = field(default_factory=lambda: os.getenv("CATALOG_DIR", "config/vendors"))

    # System config holding the per-domain policies
    domains_config: str = field(
        default_factory=lambda: os.getenv("DOMAINS_CONFIG", "config/provisioning-system.yaml")
    )

    # Upload limit
    max_upload_size_mb: int = field(default_factory=lambda: int(os.getenv("MAX_UPLOAD_SIZE_MB", "10")))

    # Worker threads for per-row normalization and validation
    max_workers: int = field(default_factory=lambda: int(os.getenv("IMPORT_MAX_WORKERS", "4")))

    # Rows committed concurrently (1 = sequential)
    commit_concurrency: int = field(
        default_factory=lambda: int(os.getenv("IMPORT_COMMIT_CONCURRENCY", "1"))
    )

    # How long a classified batch waits for operator decisions
    batch_ttl_seconds: int = field(
        default_factory=lambda: int(os.getenv("IMPORT_BATCH_TTL_SECONDS", "3600"))
    )

    cors_origins: list[str] = field(
        default_factory=lambda: _split(
            os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")
        )
    )

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


class DomainPolicies:
    """Lookup of deployment policies by domain name."""

    def __init__(self, policies: Optional[list[DomainPolicy]] = None):
        self.policies = list(policies or [])

    def effective_policy(self, domain: str) -> DomainPolicy:
        """Get the policy for a domain.

        Falls back to the first configured domain, then to a permissive
        default when nothing is configured.
        """
        for policy in self.policies:
            if policy.name == domain:
                return policy
        if self.policies:
            fallback = self.policies[0]
            return DomainPolicy(name=domain, require_user=fallback.require_user)
        return DomainPolicy(name=domain)


def load_domain_policies(path: str | Path) -> DomainPolicies:
    """Read the ``domains`` list of the system YAML config.

    A missing file yields no policies (every domain gets the default).

    Raises:
        ValueError: If the file is not a YAML mapping
    """
    config_path = Path(path)
    if not config_path.exists():
        logger.warning(f"Domain config not found at {config_path}, using defaults")
        return DomainPolicies()

    with config_path.open("r", encoding="utf-8") as f:
        data: Any = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping in {config_path}")

    policies = [
        DomainPolicy(
            name=str(entry.get("name", "")),
            require_user=bool(entry.get("require_user", False)),
        )
        for entry in data.get("domains") or []
        if isinstance(entry, dict)
    ]
    logger.info(f"Loaded {len(policies)} domain policies from {config_path}")
    return DomainPolicies(policies)
