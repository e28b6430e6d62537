"""
Downline tree constants.

Limits shared by the traversal engine, the store adapter and settings.
"""

# Deepest level reported on its own; anything deeper is counted as overflow
MAX_TRACKED_LEVEL = 6

# Max ids per membership ("upline in [...]") query
MEMBERSHIP_FAN_IN = 30

# Hop ceilings for upward walks (guard against cycles and dangling uplines)
ANCESTRY_HOP_LIMIT = 100
SEARCH_PATH_HOP_LIMIT = 20

# Max store calls in flight per traversal (stays within the DB pool)
STORE_MAX_CONCURRENCY = 10

# Pagination and search limits
CHILD_PAGE_SIZE = 50
SEARCH_NAME_LIMIT = 20
SEARCH_MIN_QUERY_LENGTH = 2

# Highest BMP private-use code point, used as the upper bound of prefix scans
PREFIX_SCAN_SUFFIX = "\uf8ff"

# Referral codes
REFERRAL_CODE_PREFIX = "NU"
REFERRAL_CODE_BODY_LENGTH = 6
REFERRAL_CODE_RANDOM_ATTEMPTS = 5

# Direct referral goal shown on the dashboard badge
DIRECT_REFERRAL_GOAL = 10
