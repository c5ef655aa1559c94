"""Package repositories.

- package.py: the Package value type
- array_repository.py: in-memory store
- filesystem.py: installed set persisted as JSON
"""

from .package import Distribution, Package  # noqa: F401
from .array_repository import ArrayRepository  # noqa: F401

__all__ = ["ArrayRepository", "Distribution", "Package"]
