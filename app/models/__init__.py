# Import all models to ensure they are registered with SQLAlchemy
from . import appointment, branch

__all__ = [
    "appointment",
    "branch",
]
