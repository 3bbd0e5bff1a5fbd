from typing import Any


class InternalException(Exception):
    """
    All internal exceptions should inherit from this. Whatever surface
    sits on top maps these to its own responses via `code`
    """

    default_detail = 'Internal failure.'
    default_code = 'internal_failure'

    def __init__(self, message: str | None = None, context: dict[Any, Any] | Any = None):
        self.message = message or self.default_detail
        self.context = context or dict()
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return self.default_code

    def __str__(self) -> str:
        return f'{self.__class__.__name__}({self.message})'


class ValidationException(InternalException):
    """
    Input rejected before any work was done. Never coerced to a default.
    """

    default_detail = 'Invalid input.'
    default_code = 'invalid_input'
