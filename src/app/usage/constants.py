USAGE_DAILY_PK_ABBREV = 'usd'
