from src.common.exceptions import InternalException


class UserNotFound(InternalException):
    default_detail = 'User not found.'
    default_code = 'user_not_found'
