"""
Repository Configuration and Factory

Provides factory function to get the appropriate repository implementation
based on environment configuration.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .base import LeadFinderRepositoryInterface

logger = logging.getLogger(__name__)


class RepositoryMode(str, Enum):
    """Which backend serves the lead finder repository."""
    MONGO = "mongo"    # Scheduled runs
    MEMORY = "memory"  # Dry runs, nothing persisted


@dataclass
class RepositoryConfig:
    """
    Configuration for repository initialization.

    Loaded from environment variables with sensible defaults.
    """
    mode: RepositoryMode = RepositoryMode.MONGO
    mongodb_uri: Optional[str] = None
    database: str = "lead_finder"

    @classmethod
    def from_env(cls) -> "RepositoryConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - LEAD_FINDER_REPOSITORY: mongo (default) or memory
        - MONGODB_URI: required in mongo mode
        - LEAD_FINDER_DATABASE: database name (default: lead_finder)

        Raises:
            ValueError: If mongo mode is selected and MONGODB_URI is not set
        """
        mode_str = os.getenv("LEAD_FINDER_REPOSITORY", "mongo").lower()
        try:
            mode = RepositoryMode(mode_str)
        except ValueError:
            logger.warning(f"Invalid LEAD_FINDER_REPOSITORY '{mode_str}', defaulting to mongo")
            mode = RepositoryMode.MONGO

        mongodb_uri = os.getenv("MONGODB_URI")
        if mode == RepositoryMode.MONGO and not mongodb_uri:
            raise ValueError("MONGODB_URI environment variable is required")

        return cls(
            mode=mode,
            mongodb_uri=mongodb_uri,
            database=os.getenv("LEAD_FINDER_DATABASE", "lead_finder"),
        )


# Singleton repository instance
_repository_instance: Optional[LeadFinderRepositoryInterface] = None


def get_lead_finder_repository() -> LeadFinderRepositoryInterface:
    """
    Get the lead finder repository instance.

    Returns the MongoDB repository or the in-memory one depending on
    LEAD_FINDER_REPOSITORY. Uses singleton pattern for connection pooling.

    Raises:
        ValueError: If MongoDB URI is not configured in mongo mode
    """
    global _repository_instance

    if _repository_instance is None:
        config = RepositoryConfig.from_env()

        if config.mode == RepositoryMode.MEMORY:
            from .memory_repository import InMemoryLeadFinderRepository
            _repository_instance = InMemoryLeadFinderRepository()
            logger.info("Initialized in-memory lead finder repository (nothing will be persisted)")
        else:
            from .mongo_repository import MongoLeadFinderRepository
            _repository_instance = MongoLeadFinderRepository(
                mongodb_uri=config.mongodb_uri,
                database=config.database,
            )
            logger.info("Initialized MongoDB lead finder repository")

    return _repository_instance


def reset_lead_finder_repository() -> None:
    """
    Reset the repository singleton.

    Used for testing or when configuration changes.
    """
    global _repository_instance

    if _repository_instance is not None:
        from .mongo_repository import MongoLeadFinderRepository
        if isinstance(_repository_instance, MongoLeadFinderRepository):
            MongoLeadFinderRepository.reset_connection()

    _repository_instance = None
    logger.info("Repository singleton reset")
