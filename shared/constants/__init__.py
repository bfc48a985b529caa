from .environments import Environment
from .topics import Topics

__all__ = ["Environment", "Topics"]
