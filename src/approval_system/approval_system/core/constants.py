"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200
DEFAULT_URGENT_AFTER_DAYS = 3
DEFAULT_AUTOSAVE_INTERVAL = 30
DEFAULT_LAYOUT_COLUMNS = 12
DEFAULT_SCHEMA_VERSION = "1.0"
MAX_TEMPLATE_CODE_PREFIX = 10
# number / money inputs must stay below this magnitude
MAX_NUMBER_MAGNITUDE = 10**15
