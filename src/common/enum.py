import enum
from typing import Any, Type, TypeVar

_EnumT = TypeVar('_EnumT', bound='BaseEnum')


class BaseEnum(str, enum.Enum):
    @classmethod
    def has(cls, item: Any) -> bool:
        try:
            cls(item)
        except ValueError:
            return False
        else:
            return True

    @classmethod
    def parse(cls: Type[_EnumT], item: Any, exception: Type[Exception] = ValueError) -> _EnumT:
        """
        Strict lookup by value, case-insensitive for strings. Unknown
        values raise `exception` rather than falling back to a default
        """
        if isinstance(item, cls):
            return item
        if isinstance(item, str):
            for member in cls:
                if member.value.lower() == item.strip().lower():
                    return member
        raise exception(f'{item!r} is not a valid {cls.__name__}, expected one of: {", ".join(cls.list_all())}')

    def __str__(self) -> str:
        return str(self.value)

    @classmethod
    def list_all(cls) -> list[str]:
        return [e.value for e in cls]
