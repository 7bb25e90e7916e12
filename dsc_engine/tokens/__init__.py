"""Token implementations."""
from .in_memory import InMemoryToken

__all__ = ["InMemoryToken"]
