from .executor import Executor
from .hydrator import Hydrator

__all__ = ("Executor", "Hydrator")
