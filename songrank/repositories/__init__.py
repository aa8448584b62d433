from .users import UsersRepository
from .songs import SongsRepository, SongStore
from .tokens import RevokedTokensRepository

__all__ = [
    "UsersRepository",
    "SongsRepository",
    "SongStore",
    "RevokedTokensRepository",
]
