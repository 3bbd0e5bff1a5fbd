from polyfactory.factories.pydantic_factory import ModelFactory
from polyfactory.pytest_plugin import register_fixture

from src.app.users import UserCreate
from tests.factories.base import Faker

DEFAULT_TEAM_ID = 'team-1'


@register_fixture(scope='session', autouse=True, name='user_factory')
class UserFactory(ModelFactory[UserCreate]):
    __model__ = UserCreate

    team_id = lambda: DEFAULT_TEAM_ID
    external_id = Faker.user_name
    display_name = Faker.name
    has_report = lambda: False
