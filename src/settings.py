import os

from decouple import Choices, config

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
BASE_MODULE = 'src'
SRC_DIR = os.path.join(BASE_DIR, BASE_MODULE)
# Used for the local sqlite database
TEMP_DIR = os.path.join(BASE_DIR, 'tmp')
if not os.path.exists(TEMP_DIR):
    os.makedirs(TEMP_DIR)

DEBUG = config('DEBUG', default=False, cast=bool)
ENVIRONMENT = config('ENVIRONMENT', default='local', cast=Choices(['local', 'testing', 'staging', 'production']))
IS_LOCAL = ENVIRONMENT == 'local'
IS_PRODUCTION = ENVIRONMENT == 'production'
IS_STAGING = ENVIRONMENT == 'staging'
IS_TESTING = ENVIRONMENT == 'testing'  # Set in tests/conftest.py
IS_DEPLOYED_ENV = IS_PRODUCTION or IS_STAGING

LOG_LEVEL = config('LOG_LEVEL', 'INFO')

# Record store
DATABASE_URL = config('DATABASE_URL', default=f'sqlite:///{os.path.join(TEMP_DIR, "usage.db")}')
DB_LOG_STATEMENTS = config('DB_LOG_STATEMENTS', default=False, cast=bool)

# Model modules imported on setup
BOUNDARIES = [
    'app.users',
    'app.usage',
]

# Leaderboard
# All-time windows start here instead of scanning for the earliest record
LEADERBOARD_EPOCH_DATE = config('LEADERBOARD_EPOCH_DATE', default='2000-01-01')
# Absorbs client local dates that land on a different UTC day than the server
LEADERBOARD_WINDOW_BUFFER_DAYS = config('LEADERBOARD_WINDOW_BUFFER_DAYS', default=1, cast=int)
CHART_DEFAULT_TOP_N = config('CHART_DEFAULT_TOP_N', default=10, cast=int)
RANK_HISTORY_DEFAULT_PERIODS = config('RANK_HISTORY_DEFAULT_PERIODS', default=20, cast=int)
