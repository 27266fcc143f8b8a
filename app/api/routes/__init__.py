from . import generation, tasks

__all__ = ["generation", "tasks"]
