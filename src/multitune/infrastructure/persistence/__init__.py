"""Infrastructure persistence layer."""

from .database import Database
from .models import (
    Base,
    PlaylistItemModel,
    PlaylistModel,
    UserModel,
    UserServiceModel,
)
from .repositories import (
    CredentialRepository,
    PlaylistMirrorRepository,
    UserRepository,
)

__all__ = [
    "Base",
    "CredentialRepository",
    "Database",
    "PlaylistItemModel",
    "PlaylistMirrorRepository",
    "PlaylistModel",
    "UserModel",
    "UserRepository",
    "UserServiceModel",
]
