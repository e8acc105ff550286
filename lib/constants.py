"""
Constants for the application analytics exporter.

This module defines all magic strings and numbers used across the codebase
to prevent typos, ensure consistency, and make maintenance easier.
"""

# =============================================================================
# API Endpoints
# =============================================================================

DEFAULT_API_URL = "https://api.cord.com"

APPLICATIONS_PATH = "/v1/applications"
USERS_PATH = "/v1/users"
GROUPS_PATH = "/v1/groups"
THREADS_PATH = "/v1/threads"
MESSAGES_PATH = "/v1/messages"

# Response keys holding the item arrays of paginated endpoints
USERS_KEY = "users"
THREADS_KEY = "threads"
MESSAGES_KEY = "messages"

# =============================================================================
# Pagination
# =============================================================================

USERS_PAGE_LIMIT = 25000
THREADS_PAGE_LIMIT = 25000
MESSAGES_PAGE_LIMIT = 1500  # messages are much heavier records

# =============================================================================
# Authentication
# =============================================================================

TOKEN_ALGORITHM = "HS512"

SECONDS_PER_MINUTE = 60

TENANT_TOKEN_TTL_SECONDS = 1 * SECONDS_PER_MINUTE
APPLICATION_TOKEN_TTL_SECONDS = 90 * SECONDS_PER_MINUTE

# =============================================================================
# Default Configuration Values
# =============================================================================

DEFAULT_REQUEST_TIMEOUT = 120  # seconds
DEFAULT_RETRY_ATTEMPTS = 2  # first attempt plus exactly one retry
DEFAULT_RETRY_WAIT = 1.0  # seconds
DEFAULT_FETCH_WORKERS = 4  # users, groups, threads, messages
DEFAULT_CONTENT_MAX_DEPTH = 1000
DEFAULT_LOG_LEVEL = "INFO"

# Internal test applications never included in the export
EXCLUDED_APPLICATION_IDS = frozenset({
    "923ecd44-198f-49a2-a4f5-96f69c3d148b",
    "aeb2797f-f0a3-485c-a317-4986e2c8343b",
})

# =============================================================================
# Record Values
# =============================================================================

STATUS_ACTIVE = "active"
STATUS_DELETED = "deleted"

MENTION_NODE_TYPE = "mention"

# =============================================================================
# Output Columns
# =============================================================================

COLUMN_ID = "ID"
COLUMN_NAME = "Name"

METRIC_TOTAL_USERS = "Total User Count"
METRIC_ACTIVE_USERS = "Active User Count"
METRIC_DELETED_USERS = "Deleted User Count"
METRIC_TOTAL_GROUPS = "Total Group Count"
METRIC_ACTIVE_GROUPS = "Active Group Count"
METRIC_DELETED_GROUPS = "Deleted Group Count"
METRIC_SLACK_GROUPS = "Slack Connected Group Count"
METRIC_TOTAL_THREADS = "Total Thread Count"
METRIC_RESOLVED_THREADS = "Total Resolved Thread Count"
METRIC_THREAD_MESSAGES = "Total Message Count"
METRIC_DELETED_MESSAGES = "Total Deleted Message Count"
METRIC_USER_MESSAGES = "Total User Messages Count"
METRIC_ACTION_MESSAGES = "Total Action Messages Count"
METRIC_THREAD_PARTICIPANTS = "Total Thread Participants Count"
METRIC_TOTAL_MESSAGES = "Total Messages"
METRIC_MENTIONS = "Total Mention Messages Count"
METRIC_REACTIONS = "Total Reactions Count"
METRIC_ATTACHMENTS = "Total Attachments Count"

# Column order of every output row
METRIC_NAMES = (
    METRIC_TOTAL_USERS,
    METRIC_ACTIVE_USERS,
    METRIC_DELETED_USERS,
    METRIC_TOTAL_GROUPS,
    METRIC_ACTIVE_GROUPS,
    METRIC_DELETED_GROUPS,
    METRIC_SLACK_GROUPS,
    METRIC_TOTAL_THREADS,
    METRIC_RESOLVED_THREADS,
    METRIC_THREAD_MESSAGES,
    METRIC_DELETED_MESSAGES,
    METRIC_USER_MESSAGES,
    METRIC_ACTION_MESSAGES,
    METRIC_THREAD_PARTICIPANTS,
    METRIC_TOTAL_MESSAGES,
    METRIC_MENTIONS,
    METRIC_REACTIONS,
    METRIC_ATTACHMENTS,
)
