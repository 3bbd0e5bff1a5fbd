import datetime
import re
from decimal import Decimal
from itertools import islice
from typing import Iterable, Iterator, List, TypeVar, Union

# Zero padded ISO dates compare correctly as plain strings
ISO_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')

_T = TypeVar('_T')


def parse_date_string(value: str) -> datetime.date:
    """
    Strict YYYY-MM-DD parsing. Anything else, including real dates in
    another layout like 2025-1-5, raises ValueError
    """
    if not isinstance(value, str) or not ISO_DATE_PATTERN.match(value):
        raise ValueError(f'Expected a YYYY-MM-DD date string, got {value!r}')

    return datetime.date.fromisoformat(value)


def format_date(date: datetime.date) -> str:
    return date.isoformat()


def decimal_parse(number: Union[str, Decimal, float, int]) -> Decimal:
    """
    Ensures a decimal is returned. Floats go through their shortest repr so
    0.1 becomes Decimal('0.1') and sums stay exact regardless of order
    """
    if isinstance(number, Decimal):
        return number

    if isinstance(number, float):
        return Decimal(repr(number))

    if isinstance(number, int):
        return Decimal(number)

    return Decimal(number.replace(',', ''))


def split_every(iterable: Iterable[_T], split_size: int) -> Iterator[List[_T]]:
    iterator = iter(iterable)
    piece = list(islice(iterator, split_size))
    while piece:
        yield piece
        piece = list(islice(iterator, split_size))


def get_first_date_of_month(date: datetime.date) -> datetime.date:
    return datetime.date(date.year, date.month, 1)


def get_first_date_of_week(date: datetime.date) -> datetime.date:
    """
    Monday of the ISO week containing date
    """
    return date - datetime.timedelta(days=date.weekday())
