"""Unit tests for common utility functions."""

import datetime
from decimal import Decimal

import pytest

from src.common.utils import (
    decimal_parse,
    get_first_date_of_month,
    get_first_date_of_week,
    parse_date_string,
    split_every,
)


class TestParseDateString:
    def test_valid_date(self):
        assert parse_date_string('2025-01-05') == datetime.date(2025, 1, 5)

    @pytest.mark.parametrize('value', ['2025-1-5', '2025/01/05', '20250105', '2025-02-30', '', None, 20250105])
    def test_rejects_anything_else(self, value):
        """Test that only real, zero padded YYYY-MM-DD dates parse."""
        with pytest.raises(ValueError):
            parse_date_string(value)


class TestDecimalParse:
    def test_float_uses_shortest_repr(self):
        """Test that 0.1 becomes exactly Decimal('0.1') rather than its binary expansion."""
        assert decimal_parse(0.1) == Decimal('0.1')

    def test_sum_is_order_independent(self):
        values = [0.1, 0.2, 0.3, 1e-9, 123.456]
        forward = sum((decimal_parse(v) for v in values), Decimal())
        backward = sum((decimal_parse(v) for v in reversed(values)), Decimal())
        assert forward == backward

    def test_strings_and_ints(self):
        assert decimal_parse('1,234.50') == Decimal('1234.50')
        assert decimal_parse(3) == Decimal(3)
        assert decimal_parse(Decimal('2.5')) == Decimal('2.5')


def test_split_every():
    assert list(split_every(range(5), 2)) == [[0, 1], [2, 3], [4]]
    assert list(split_every([], 3)) == []


class TestCalendarHelpers:
    def test_first_date_of_week_is_monday(self):
        # 2025-01-05 is a Sunday, it belongs to the week starting Monday 2024-12-30
        assert get_first_date_of_week(datetime.date(2025, 1, 5)) == datetime.date(2024, 12, 30)
        assert get_first_date_of_week(datetime.date(2025, 1, 6)) == datetime.date(2025, 1, 6)
        assert get_first_date_of_week(datetime.date(2025, 1, 8)) == datetime.date(2025, 1, 6)

    def test_first_date_of_month(self):
        assert get_first_date_of_month(datetime.date(2024, 2, 17)) == datetime.date(2024, 2, 1)
