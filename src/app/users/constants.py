USER_PK_ABBREV = 'usr'
