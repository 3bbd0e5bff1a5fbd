from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from src.app.usage import UsageRecord


class TestUsageRecord:
    def test_effective_date_prefers_utc_date(self):
        assert UsageRecord(user_id='alice', date='2025-01-01', utc_date='2025-01-02').effective_date == '2025-01-02'
        assert UsageRecord(user_id='alice', date='2025-01-01').effective_date == '2025-01-01'

    @pytest.mark.parametrize('field', ['input_tokens', 'output_tokens', 'total_tokens', 'total_cost'])
    def test_negative_counters_are_rejected(self, field):
        with pytest.raises(ValidationError):
            UsageRecord(user_id='alice', date='2025-01-01', **{field: -1})

    @pytest.mark.parametrize('cost', [float('inf'), float('nan')])
    def test_non_finite_cost_is_rejected(self, cost):
        with pytest.raises(ValidationError):
            UsageRecord(user_id='alice', date='2025-01-01', total_cost=cost)

    @pytest.mark.parametrize('date', ['2025-1-1', '01/02/2025', '2025-13-01'])
    def test_malformed_dates_are_rejected(self, date):
        with pytest.raises(ValidationError):
            UsageRecord(user_id='alice', date=date)
        with pytest.raises(ValidationError):
            UsageRecord(user_id='alice', date='2025-01-01', utc_date=date)

    def test_naive_updated_at_is_utc(self):
        record = UsageRecord(user_id='alice', date='2025-01-01', updated_at=datetime(2025, 1, 1, 12))
        assert record.updated_at == datetime(2025, 1, 1, 12, tzinfo=timezone.utc)

    def test_accepts_camel_case_payload(self):
        record = UsageRecord.model_validate(
            {'userId': 'alice', 'date': '2025-01-01', 'utcDate': '2025-01-01', 'totalCost': 1.5, 'modelsUsed': ['opus']}
        )
        assert record.total_cost == 1.5
        assert record.models_used == ['opus']

    def test_unknown_fields_are_rejected(self):
        with pytest.raises(ValidationError):
            UsageRecord(user_id='alice', date='2025-01-01', sessions=3)
