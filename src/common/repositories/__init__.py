"""
Repository Pattern for Lead Finder Persistence

Public API:
- get_lead_finder_repository(): Factory to get the configured repository
- reset_lead_finder_repository(): Drop the cached instance (tests)
- LeadFinderRepositoryInterface: Abstract interface used by the pipeline
- WriteResult: Result dataclass for write operations

Usage:
    from src.common.repositories import get_lead_finder_repository

    repo = get_lead_finder_repository()
    run_id = repo.create_run(date.today(), run_config)
"""

from .base import LeadFinderRepositoryInterface, WriteResult
from .config import (
    get_lead_finder_repository,
    reset_lead_finder_repository,
    RepositoryConfig,
    RepositoryMode,
)
from .memory_repository import InMemoryLeadFinderRepository

__all__ = [
    "get_lead_finder_repository",
    "reset_lead_finder_repository",
    "LeadFinderRepositoryInterface",
    "InMemoryLeadFinderRepository",
    "WriteResult",
    "RepositoryConfig",
    "RepositoryMode",
]
