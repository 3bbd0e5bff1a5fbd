from src.app.users.constants import USER_PK_ABBREV
from src.app.users.domains import UserCreate, UserRead
from src.app.users.exceptions import UserNotFound
from src.app.users.models import User
from src.app.users.service import InMemoryUserDirectory, SqlUserDirectory, UserDirectory

__all__ = [
    'USER_PK_ABBREV',
    'InMemoryUserDirectory',
    'SqlUserDirectory',
    'User',
    'UserCreate',
    'UserDirectory',
    'UserNotFound',
    'UserRead',
]
