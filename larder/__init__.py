"""Larder - cache-aware repositories for Python.

This module provides the public API for building repositories that share one
caching strategy and defer writes to a unit of work.
"""

from .caching import AppCaches, CachePolicyFactory, CachePolicyOptions, CacheStore
from .config import RepositorySettings
from .domain import (
    ConstructionError,
    Entity,
    HasIdentity,
    InvalidArgumentError,
    LarderError,
    Query,
)
from .repository import InMemoryRepositoryBackend, Repository, RepositoryBackend
from .uow import InMemoryUnitOfWork, UnitOfWork

__all__ = [
    # Repositories
    "Repository",
    "RepositoryBackend",
    "InMemoryRepositoryBackend",
    "RepositorySettings",
    # Caching
    "AppCaches",
    "CacheStore",
    "CachePolicyFactory",
    "CachePolicyOptions",
    # Unit of work
    "UnitOfWork",
    "InMemoryUnitOfWork",
    # Domain primitives
    "Entity",
    "HasIdentity",
    "Query",
    # Errors
    "LarderError",
    "InvalidArgumentError",
    "ConstructionError",
]
