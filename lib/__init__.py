"""
Application Analytics shared library.
"""
# Import constants module for easy access
from . import constants
from .auth import auth_headers, issue_application_token, issue_tenant_token
from .client import AnalyticsAPIClient
from .config import AnalyticsConfig, generate_sample_config, load_config, validate_config
from .constants import (
    DEFAULT_API_URL,
    DEFAULT_RETRY_ATTEMPTS,
    EXCLUDED_APPLICATION_IDS,
    METRIC_NAMES,
)
from .content import ContentTooDeepError, count_tagged_nodes
from .metrics import aggregate_application_metrics
from .models import (
    Application,
    ApplicationMetrics,
    ApplicationSummary,
    GroupRecord,
    MessageRecord,
    ThreadRecord,
    UserRecord,
)
from .utils import (
    AnalyticsError,
    AuthError,
    ConfigError,
    FetchCancelledError,
    InvalidApplicationError,
    MalformedResponseError,
    ProgressCallback,
    ProgressTracker,
    TransportError,
    WriteError,
    format_progress,
    log_progress,
    setup_logging,
    write_csv,
    write_json,
)

__all__ = [
    # Constants
    'constants',
    'DEFAULT_API_URL',
    'DEFAULT_RETRY_ATTEMPTS',
    'EXCLUDED_APPLICATION_IDS',
    'METRIC_NAMES',
    # Auth
    'issue_tenant_token',
    'issue_application_token',
    'auth_headers',
    # Client
    'AnalyticsAPIClient',
    # Config
    'AnalyticsConfig',
    'load_config',
    'validate_config',
    'generate_sample_config',
    # Content
    'ContentTooDeepError',
    'count_tagged_nodes',
    # Metrics
    'aggregate_application_metrics',
    # Models
    'Application',
    'ApplicationMetrics',
    'ApplicationSummary',
    'UserRecord',
    'GroupRecord',
    'ThreadRecord',
    'MessageRecord',
    # Errors
    'AnalyticsError',
    'AuthError',
    'ConfigError',
    'TransportError',
    'MalformedResponseError',
    'InvalidApplicationError',
    'WriteError',
    'FetchCancelledError',
    # Utils
    'ProgressCallback',
    'ProgressTracker',
    'format_progress',
    'log_progress',
    'setup_logging',
    'write_csv',
    'write_json',
]
