import os
from pathlib import Path

# Backend
API_BASE_URL = "https://gagoforge.onrender.com"
API_URL_ENV = "GAGOFORGE_API_URL"

AUTH_LOGIN_PATH = "/api/auth/login/"
AUTH_REFRESH_PATH = "/api/auth/refresh/"
AUTH_VERIFY_PATH = "/api/auth/verify/"
REGISTER_PATH = "/api/users/register/"
CURRENT_USER_PATH = "/api/users/me/"

# Requests to these never trigger the refresh-and-retry cycle
AUTH_PATHS = (AUTH_LOGIN_PATH, AUTH_REFRESH_PATH, AUTH_VERIFY_PATH, REGISTER_PATH)

# Config paths
CONFIG_DIR = Path(os.path.expanduser("~")) / ".gagoforge"
CONFIG_FILE = CONFIG_DIR / "config.json"
TOKEN_FILE = CONFIG_DIR / "tokens.json"
CACHE_DIR = CONFIG_DIR / "cache"
DRAFTS_DIR = CONFIG_DIR / "drafts"
LOG_FILE = CONFIG_DIR / "debug.log"

# Token store keys
ACCESS_TOKEN_KEY = "access_token"
REFRESH_TOKEN_KEY = "refresh_token"

# Cache TTLs (seconds)
PROBLEM_DETAIL_CACHE_TTL = 3600     # 1 hour
STARTER_CODE_CACHE_TTL = 86400      # 24 hours

# API settings
REQUEST_TIMEOUT = 10.0
MAX_RETRIES = 2
RETRY_BACKOFF = 0.5  # seconds, doubled per attempt

# Pagination
PROBLEMS_PAGE_SIZE = 9
SUBMISSIONS_PAGE_SIZE = 10
TRACK_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20

# Scoring
DEFAULT_PASSING_SCORE = 80.0
EXPERT_PROFICIENCY = 80
INTERMEDIATE_PROFICIENCY = 50
LEVEL_EXPERIENCE = 1000

# Routes used for navigation side effects
LOGIN_ROUTE = "/login"
PROBLEM_LIST_ROUTE = "/problems"
PROBLEM_ROUTE = "/problems/{slug}"

# User-facing messages
EMPTY_CODE_MESSAGE = "Please write some code before submitting."
SUBMISSION_FAILED_MESSAGE = "Submission failed. Please try again."
NETWORK_ERROR_MESSAGE = (
    "Cannot reach the server. Please check your connection and try again."
)
LOAD_PROBLEM_FAILED_MESSAGE = "Failed to load problem. Please try again."
ACCEPTED_MESSAGE = "Congratulations! Your solution passed all test cases."
PASSING_MESSAGE = "Your solution scored {score:.1f}% and meets the passing threshold!"
BELOW_THRESHOLD_MESSAGE = "Your solution scored {score:.1f}%. Keep trying!"
SESSION_EXPIRED_MESSAGE = "Session expired. Please log in again."

# Languages
PYTHON = "python"
JAVASCRIPT = "javascript"

LANGUAGE_EXTENSIONS = {
    PYTHON: ".py",
    JAVASCRIPT: ".js",
}
