"""Repository infrastructure for cached entity persistence.

This package provides:
- Repository: Cached CRUD surface for one entity type
- RepositoryBackend: Storage hooks a concrete entity type supplies
- InMemoryRepositoryBackend: Dictionary-backed storage for tests and prototypes
"""

from .backend import InMemoryRepositoryBackend, RepositoryBackend
from .repository import PolicyFactoryBuilder, Repository

__all__ = [
    "Repository",
    "PolicyFactoryBuilder",
    "RepositoryBackend",
    "InMemoryRepositoryBackend",
]
