# Service endpoints
DEFAULT_BASE_URL = "https://fiddle.fastly.dev"
BASE_URL_ENV_VAR = "FIDDLEKIT_BASE_URL"
LOG_LEVEL_ENV_VAR = "FIDDLEKIT_LOG_LEVEL"

# HTTP
HTTP_TIMEOUT = 30.0
STREAM_CONNECT_TIMEOUT = 10.0

# Result collection (seconds)
DEFAULT_MIN_WAIT = 2.0
DEFAULT_MAX_WAIT = 25.0
DEFAULT_RESULT_TIMEOUT = 60.0

# Cache IDs are drawn from [0, CACHE_ID_UPPER_BOUND]
CACHE_ID_UPPER_BOUND = 100000

# Server-sent event kinds
EVENT_WAITING_FOR_SYNC = "waitingForSync"
EVENT_UPDATE_RESULT = "updateResult"

# Built-in wait-for tags
WAIT_FOR_TESTS = "tests"
