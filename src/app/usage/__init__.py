from src.app.usage.constants import USAGE_DAILY_PK_ABBREV
from src.app.usage.domains import UsageRecord, UsageRecordCreate
from src.app.usage.models import UsageDaily
from src.app.usage.store import InMemoryUsageRecordStore, SqlUsageRecordStore, UsageRecordStore

__all__ = [
    # Constants
    'USAGE_DAILY_PK_ABBREV',
    # Models
    'UsageDaily',
    # Domains
    'UsageRecord',
    'UsageRecordCreate',
    # Stores
    'InMemoryUsageRecordStore',
    'SqlUsageRecordStore',
    'UsageRecordStore',
]
