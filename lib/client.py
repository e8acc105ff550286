"""
HTTP client for the analytics API.

Handles:
- Bearer authentication on every call
- Cursor pagination (``limit`` / ``token`` query parameters)
- One retry per failed page request; a second failure propagates
- Response shape validation (never retried)
"""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Union

import requests

from .auth import auth_headers
from .constants import (
    APPLICATIONS_PATH,
    DEFAULT_API_URL,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_WAIT,
    GROUPS_PATH,
    MESSAGES_KEY,
    MESSAGES_PAGE_LIMIT,
    MESSAGES_PATH,
    THREADS_KEY,
    THREADS_PAGE_LIMIT,
    THREADS_PATH,
    USERS_KEY,
    USERS_PAGE_LIMIT,
    USERS_PATH,
)
from .models import GroupRecord, MessageRecord, ThreadRecord, UserRecord
from .utils import (
    FetchCancelledError,
    MalformedResponseError,
    TransportError,
    retry_with_backoff,
    transport_error_for_status,
)

logger = logging.getLogger(__name__)

# A bearer token, or a factory minting a fresh one for every attempt
TokenSource = Union[str, Callable[[], str]]
PageReporter = Callable[[str], None]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class AnalyticsAPIClient:
    """
    Client for the tenant and application endpoints.

    The session is shared by the concurrent resource fetches of one
    application; each fetch keeps its own accumulator.
    A fetch handed a ``cancel`` event checks it before every request and
    stops with FetchCancelledError once it is set.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_wait: float = DEFAULT_RETRY_WAIT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait
        self.session = session or requests.Session()

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    def _get_once(self, path: str, token: TokenSource, params: Optional[Dict[str, Any]] = None) -> Any:
        """Make a single GET and decode its JSON body."""
        bearer = token() if callable(token) else token
        url = f"{self.base_url}{path}"
        logger.debug(f"GET {path} params={params}")
        try:
            response = self.session.get(
                url,
                params=params,
                headers=auth_headers(bearer),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise TransportError(f"GET {path} failed: {e}") from e

        if response.status_code != 200:
            raise transport_error_for_status(response.status_code, response.reason, f"GET {path}")

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Response for {path} is not valid JSON") from e

    def get_json(self, path: str, token: TokenSource, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET with the retry policy: one retry on TransportError, then give up."""
        attempt = retry_with_backoff(
            max_attempts=self.retry_attempts,
            min_wait=self.retry_wait,
            max_wait=self.retry_wait,
            exceptions=(TransportError,),
        )(self._get_once)
        return attempt(path, token, params)

    @staticmethod
    def _check_cancelled(cancel: Optional[threading.Event], path: str) -> None:
        if cancel is not None and cancel.is_set():
            raise FetchCancelledError(f"GET {path} cancelled")

    # -------------------------------------------------------------------------
    # Pagination
    # -------------------------------------------------------------------------

    def fetch_paginated(
        self,
        path: str,
        key: str,
        limit: int,
        token: TokenSource,
        report: Optional[PageReporter] = None,
        cancel: Optional[threading.Event] = None,
    ) -> List[Any]:
        """
        Collect every item of a cursor-paginated endpoint.

        Requests ``limit`` items per page and passes the previous page's
        ``pagination.token`` until the API returns a null token.

        Raises:
            TransportError: If a page request fails twice
            MalformedResponseError: If a page lacks the item array or pagination data
            FetchCancelledError: If ``cancel`` is set before a page request
        """
        items: List[Any] = []
        cursor: Optional[str] = None
        total: Any = None

        while True:
            params: Dict[str, Any] = {'limit': limit}
            if cursor is not None:
                params['token'] = cursor

            self._check_cancelled(cancel, path)
            data = self.get_json(path, token, params)
            if not isinstance(data, dict) or not isinstance(data.get(key), list):
                raise MalformedResponseError(f"Response for {path} was malformed -- no {key}")
            items.extend(data[key])

            pagination = data.get('pagination')
            if (
                not isinstance(pagination, dict)
                or 'token' not in pagination
                or 'total' not in pagination
                or not (pagination['token'] is None or isinstance(pagination['token'], str))
                or not _is_number(pagination['total'])
            ):
                raise MalformedResponseError(f"Malformed pagination data on response for listing {key}")

            cursor = pagination['token']
            total = pagination['total']
            message = f"    Fetched {len(items)} {key} of {total}"
            logger.debug(message.strip())
            if report:
                report(message)

            if cursor is None:
                break

        if len(items) != total:
            logger.warning(f"Fetched {len(items)} {key} but the API reported {total}")
        return items

    # -------------------------------------------------------------------------
    # Endpoints
    # -------------------------------------------------------------------------

    def list_applications(self, token: TokenSource) -> List[Dict[str, Any]]:
        """List the tenant's applications (raw records, validated later)."""
        data = self.get_json(APPLICATIONS_PATH, token)
        if not isinstance(data, list):
            raise MalformedResponseError(
                "Received an unexpected response when requesting the list of applications"
            )
        for application in data:
            if not isinstance(application, dict):
                raise MalformedResponseError(
                    "Malformed application object when requesting the application list"
                )
        return data

    def get_users(
        self,
        token: TokenSource,
        report: Optional[PageReporter] = None,
        cancel: Optional[threading.Event] = None,
    ) -> List[UserRecord]:
        raw = self.fetch_paginated(USERS_PATH, USERS_KEY, USERS_PAGE_LIMIT, token, report, cancel)
        return [UserRecord.from_dict(item) for item in raw]

    def get_groups(
        self,
        token: TokenSource,
        report: Optional[PageReporter] = None,
        cancel: Optional[threading.Event] = None,
    ) -> List[GroupRecord]:
        """Groups are not paginated; the endpoint returns a bare array."""
        self._check_cancelled(cancel, GROUPS_PATH)
        data = self.get_json(GROUPS_PATH, token)
        if not isinstance(data, list):
            raise MalformedResponseError("Response for groups was malformed -- no groups")
        if report:
            report(f"    Fetched {len(data)} groups")
        return [GroupRecord.from_dict(item) for item in data]

    def get_threads(
        self,
        token: TokenSource,
        report: Optional[PageReporter] = None,
        cancel: Optional[threading.Event] = None,
    ) -> List[ThreadRecord]:
        raw = self.fetch_paginated(THREADS_PATH, THREADS_KEY, THREADS_PAGE_LIMIT, token, report, cancel)
        return [ThreadRecord.from_dict(item) for item in raw]

    def get_messages(
        self,
        token: TokenSource,
        report: Optional[PageReporter] = None,
        cancel: Optional[threading.Event] = None,
    ) -> List[MessageRecord]:
        raw = self.fetch_paginated(MESSAGES_PATH, MESSAGES_KEY, MESSAGES_PAGE_LIMIT, token, report, cancel)
        return [MessageRecord.from_dict(item) for item in raw]
