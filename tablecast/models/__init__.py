from tablecast import db  # noqa: F401 - imported for model imports

from .fixture import Fixture
from .standing import Standing
from .user_profile import UserProfile

__all__ = [
    "UserProfile",
    "Standing",
    "Fixture",
]
