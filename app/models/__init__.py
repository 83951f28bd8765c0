# Import all models so they register on the shared metadata
from .event import Event  # noqa: F401
from .user import User  # noqa: F401
