"""
Testes dos utilitários de data: formato ISO estrito, semana e janelas.
"""

from datetime import datetime

import pytest

from utils.datetime_utils import parse_date, week_start, is_within_days, sort_key
from helpers import FIXED_NOW


class TestParseDate:

    def test_valid_date(self):
        assert parse_date('2026-10-19') == datetime(2026, 10, 19)

    @pytest.mark.parametrize('value', [
        '2026-10-19junk', '2026-10-19T10:00:00Z', '2026-1-5', '19/10/2026', '2026-02-30', '', None, 20261019
    ])
    def test_rejects_anything_but_exact_iso_date(self, value):
        assert parse_date(value) is None

    def test_sort_key_puts_invalid_first(self):
        assert sorted(['2026-10-19', 'x', '2026-10-01'], key=sort_key) == ['x', '2026-10-01', '2026-10-19']


class TestWeeks:

    def test_week_start_is_monday(self):
        assert week_start('2026-10-25') == '2026-10-19'
        assert week_start(FIXED_NOW) == '2026-10-19'

    def test_week_start_invalid(self):
        with pytest.raises(ValueError):
            week_start('2026-10-25junk')

    def test_is_within_days(self):
        assert is_within_days('2026-10-06', 14, FIXED_NOW)
        assert not is_within_days('2026-10-05', 14, FIXED_NOW)
        assert not is_within_days('2026-10-19junk', 14, FIXED_NOW)
