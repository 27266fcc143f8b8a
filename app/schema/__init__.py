"""ORM table definitions."""

from .jobs import GenerationJobRow
from .scripts import CachedScriptRow, EpisodeScriptRow

__all__ = ["CachedScriptRow", "EpisodeScriptRow", "GenerationJobRow"]
