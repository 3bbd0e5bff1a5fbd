from typing import Dict, Iterable, Protocol, Set

from src.app.users.domains import UserCreate, UserRead
from src.app.users.exceptions import UserNotFound
from src.app.users.models import User
from src.network.database.repository.exceptions import RepositoryObjectNotFound
from src.network.database.session import ReadOnlySession, db


class UserDirectory(Protocol):
    """Read side of the user registry the leaderboard decorates entries from."""

    def bulk_get(self, user_ids: Iterable[str]) -> Dict[str, UserRead]: ...

    def get(self, user_id: str) -> UserRead: ...

    def list_ids_with_reports(self) -> Set[str]: ...


class InMemoryUserDirectory:
    def __init__(self, users: Iterable[UserRead] = ()) -> None:
        self._users = {user.id: user for user in users}

    def add(self, user: UserRead) -> None:
        self._users[user.id] = user

    def bulk_get(self, user_ids: Iterable[str]) -> Dict[str, UserRead]:
        return {user_id: self._users[user_id] for user_id in set(user_ids) if user_id in self._users}

    def get(self, user_id: str) -> UserRead:
        try:
            return self._users[user_id]
        except KeyError:
            raise UserNotFound(f'User {user_id} not found', context={'user_id': user_id})

    def list_ids_with_reports(self) -> Set[str]:
        return {user_id for user_id, user in self._users.items() if user.has_report}


class SqlUserDirectory:
    """Users from the `user` table. Lookups for a whole leaderboard are one query."""

    @classmethod
    def factory(cls) -> 'SqlUserDirectory':
        return cls()

    def bulk_get(self, user_ids: Iterable[str]) -> Dict[str, UserRead]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        with ReadOnlySession():
            return {user.id: user for user in User.list(User.id.in_(ids))}

    def get(self, user_id: str) -> UserRead:
        with ReadOnlySession():
            try:
                return User.get(id=user_id)
            except RepositoryObjectNotFound as e:
                raise UserNotFound(f'User {user_id} not found', context={'user_id': user_id}) from e

    def list_ids_with_reports(self) -> Set[str]:
        with ReadOnlySession():
            return set(User.list_attribute('id', User.has_report.is_(True)))

    def create(self, user: UserCreate) -> UserRead:
        with db(commit_on_success=True):
            return User.create(user)
