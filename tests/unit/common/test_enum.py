import pytest

from src.common.enum import BaseEnum


class Colour(BaseEnum):
    RED = 'red'
    GREEN = 'green'


class ColourRejected(Exception):
    pass


class TestBaseEnum:
    def test_has(self):
        assert Colour.has('red')
        assert not Colour.has('blue')

    def test_list_all(self):
        assert Colour.list_all() == ['red', 'green']

    def test_str_is_value(self):
        assert str(Colour.GREEN) == 'green'

    def test_parse_is_case_insensitive(self):
        assert Colour.parse(' Red ') is Colour.RED
        assert Colour.parse(Colour.GREEN) is Colour.GREEN

    def test_parse_never_falls_back_to_a_default(self):
        with pytest.raises(ValueError, match='expected one of: red, green'):
            Colour.parse('blue')

    def test_parse_custom_exception(self):
        with pytest.raises(ColourRejected):
            Colour.parse(None, exception=ColourRejected)
