"""Shared services for request handlers."""

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional

from config import Config, get_config
from db import DirectoryDatabase


@dataclass
class PipelineServices:
    """Collaborators handed to the batch jobs; places/rehoster default to real clients."""

    config: Config
    db: Any
    places: Optional[Any] = None
    rehoster: Optional[Any] = None


@lru_cache
def get_services() -> PipelineServices:
    """Return a cached PipelineServices instance."""
    return PipelineServices(config=get_config(), db=DirectoryDatabase())
