"""FastAPI dependency injection for the phone import API.

This module provides dependency injection functions that create
and return adapter instances for use in API endpoints.

Lifecycle Management:
- Database pool: Initialized at startup, shared across requests
- Vendor catalog and domain policies: Loaded once at startup
- Batch store and commit locks: One per process
- The pool is closed at application shutdown
"""

import logging
from typing import Optional

import asyncpg

from ..adapters import (
    InMemoryBatchStore,
    OpenpyxlRowExtractor,
    PostgresDeviceRegistry,
    YamlModelCatalog,
)
from ..config import DomainPolicies, ImportConfig, load_domain_policies
from ..domain.ports import IBatchStore, IDeviceRegistry, IModelCatalog, IRowExtractor
from ..use_cases import KeyedLocks

logger = logging.getLogger(__name__)

# ========== Global State ==========

_config: Optional[ImportConfig] = None

# Global connection pool (initialized on startup)
_db_pool: Optional[asyncpg.Pool] = None

# Catalog and policies (loaded on startup)
_catalog: Optional[IModelCatalog] = None
_policies: Optional[DomainPolicies] = None

# Batches between upload and commit
_batch_store: Optional[IBatchStore] = None
_commit_locks = KeyedLocks()


def get_config() -> ImportConfig:
    """Get the service configuration (read from the environment once)."""
    global _config
    if _config is None:
        _config = ImportConfig()
    return _config


async def init_db_pool():
    """Initialize the database connection pool and registry schema.

    Should be called on application startup.
    """
    global _db_pool

    database_url = get_config().database_url
    if not database_url:
        raise ValueError("DATABASE_URL environment variable is required")

    _db_pool = await asyncpg.create_pool(
        database_url,
        min_size=2,
        max_size=10,
    )
    await PostgresDeviceRegistry(_db_pool).ensure_schema()
    logger.info("Database pool initialized")


async def close_db_pool():
    """Close the database connection pool.

    Should be called on application shutdown.
    """
    global _db_pool
    if _db_pool:
        await _db_pool.close()
        _db_pool = None


def init_catalog():
    """Load the vendor catalog and the domain policies.

    Should be called on application startup.
    """
    global _catalog, _policies

    config = get_config()
    _catalog = YamlModelCatalog.from_directory(config.catalog_dir)
    _policies = load_domain_policies(config.domains_config)


def get_db_pool() -> asyncpg.Pool:
    """Get the database connection pool."""
    if _db_pool is None:
        raise RuntimeError("Database pool not initialized. Call init_db_pool() first.")
    return _db_pool


# ========== Dependency Functions ==========


def get_extractor() -> IRowExtractor:
    """Get a spreadsheet row extractor instance."""
    return OpenpyxlRowExtractor()


def get_registry() -> IDeviceRegistry:
    """Get a device registry instance."""
    pool = get_db_pool()
    return PostgresDeviceRegistry(pool)


def get_catalog() -> IModelCatalog:
    """Get the vendor catalog loaded at startup."""
    if _catalog is None:
        raise RuntimeError("Catalog not loaded. Call init_catalog() first.")
    return _catalog


def get_policies() -> DomainPolicies:
    """Get the per-domain policies loaded at startup."""
    return _policies or DomainPolicies()


def get_batch_store() -> IBatchStore:
    """Get the process-wide batch store."""
    global _batch_store
    if _batch_store is None:
        _batch_store = InMemoryBatchStore(ttl_seconds=get_config().batch_ttl_seconds)
    return _batch_store


def get_commit_locks() -> KeyedLocks:
    """Get the process-wide per-MAC/per-device commit locks."""
    return _commit_locks
