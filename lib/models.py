"""
Data models for the application analytics exporter.

API records are loosely typed. Each model reads only the fields the metrics
need; a missing or wrong-typed optional field becomes None (or empty) rather
than an error, so schema drift in analytic fields never aborts a run.
"""
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, List, Optional

from .constants import (
    METRIC_ACTION_MESSAGES,
    METRIC_ACTIVE_GROUPS,
    METRIC_ACTIVE_USERS,
    METRIC_ATTACHMENTS,
    METRIC_DELETED_GROUPS,
    METRIC_DELETED_MESSAGES,
    METRIC_DELETED_USERS,
    METRIC_MENTIONS,
    METRIC_NAMES,
    METRIC_REACTIONS,
    METRIC_RESOLVED_THREADS,
    METRIC_SLACK_GROUPS,
    METRIC_THREAD_MESSAGES,
    METRIC_THREAD_PARTICIPANTS,
    METRIC_TOTAL_GROUPS,
    METRIC_TOTAL_MESSAGES,
    METRIC_TOTAL_THREADS,
    METRIC_TOTAL_USERS,
    METRIC_USER_MESSAGES,
)
from .utils import InvalidApplicationError


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _optional_number(value: Any) -> Optional[float]:
    # bool is an int subclass but never a count
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _list_length(value: Any) -> int:
    return len(value) if isinstance(value, list) else 0


@dataclass
class Application:
    """
    A tenant-owned application, the unit of aggregation.
    """
    id: str
    name: str
    secret: str = field(repr=False)

    @classmethod
    def from_dict(cls, data: Any) -> 'Application':
        """Validate an application record; every identity field must be a string."""
        if not isinstance(data, dict):
            raise InvalidApplicationError("Application record is not an object")
        missing = [
            key for key in ('id', 'name', 'secret')
            if not isinstance(data.get(key), str)
        ]
        if missing:
            app_id = data.get('id')
            raise InvalidApplicationError(
                f"Application {app_id!r} is missing required fields: {', '.join(missing)}"
            )
        return cls(id=data['id'], name=data['name'], secret=data['secret'])


@dataclass
class UserRecord:
    status: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> 'UserRecord':
        if not isinstance(data, dict):
            return cls()
        return cls(status=_optional_str(data.get('status')))


@dataclass
class GroupRecord:
    status: Optional[str] = None
    connect_to_slack: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> 'GroupRecord':
        if not isinstance(data, dict):
            return cls()
        return cls(
            status=_optional_str(data.get('status')),
            connect_to_slack=bool(data.get('connectToSlack')),
        )


@dataclass
class ThreadRecord:
    """
    Thread-level counters as reported by the API.

    ``participant_ids`` keeps every ``participants[].userID`` that is present,
    whatever its type (null included); uniqueness is applied by the aggregator.
    """
    resolved: bool = False
    total: Optional[float] = None
    action_messages: Optional[float] = None
    user_messages: Optional[float] = None
    deleted_messages: Optional[float] = None
    participant_ids: List[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> 'ThreadRecord':
        if not isinstance(data, dict):
            return cls()
        participants = data.get('participants')
        participant_ids = []
        if isinstance(participants, list):
            for participant in participants:
                if isinstance(participant, dict) and 'userID' in participant:
                    participant_ids.append(participant['userID'])
        return cls(
            resolved=bool(data.get('resolved')),
            total=_optional_number(data.get('total')),
            action_messages=_optional_number(data.get('actionMessages')),
            user_messages=_optional_number(data.get('userMessages')),
            deleted_messages=_optional_number(data.get('deletedMessages')),
            participant_ids=participant_ids,
        )


@dataclass
class MessageRecord:
    reaction_count: int = 0
    attachment_count: int = 0
    content: List[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> 'MessageRecord':
        if not isinstance(data, dict):
            return cls()
        content = data.get('content')
        return cls(
            reaction_count=_list_length(data.get('reactions')),
            attachment_count=_list_length(data.get('attachments')),
            content=content if isinstance(content, list) else [],
        )


@dataclass
class ApplicationMetrics:
    """Usage counters for one application."""
    total_users: int = 0
    active_users: int = 0
    deleted_users: int = 0
    total_groups: int = 0
    active_groups: int = 0
    deleted_groups: int = 0
    slack_connected_groups: int = 0
    total_threads: int = 0
    resolved_threads: int = 0
    thread_messages: float = 0
    deleted_messages: float = 0
    user_messages: float = 0
    action_messages: float = 0
    thread_participants: int = 0
    total_messages: int = 0
    mentions: int = 0
    reactions: int = 0
    attachments: int = 0

    def to_row(self) -> 'OrderedDict[str, Any]':
        """Map metric names to values, always in METRIC_NAMES order."""
        values = {
            METRIC_TOTAL_USERS: self.total_users,
            METRIC_ACTIVE_USERS: self.active_users,
            METRIC_DELETED_USERS: self.deleted_users,
            METRIC_TOTAL_GROUPS: self.total_groups,
            METRIC_ACTIVE_GROUPS: self.active_groups,
            METRIC_DELETED_GROUPS: self.deleted_groups,
            METRIC_SLACK_GROUPS: self.slack_connected_groups,
            METRIC_TOTAL_THREADS: self.total_threads,
            METRIC_RESOLVED_THREADS: self.resolved_threads,
            METRIC_THREAD_MESSAGES: self.thread_messages,
            METRIC_DELETED_MESSAGES: self.deleted_messages,
            METRIC_USER_MESSAGES: self.user_messages,
            METRIC_ACTION_MESSAGES: self.action_messages,
            METRIC_THREAD_PARTICIPANTS: self.thread_participants,
            METRIC_TOTAL_MESSAGES: self.total_messages,
            METRIC_MENTIONS: self.mentions,
            METRIC_REACTIONS: self.reactions,
            METRIC_ATTACHMENTS: self.attachments,
        }
        return OrderedDict((name, values[name]) for name in METRIC_NAMES)


@dataclass
class ApplicationSummary:
    """One output row: application identity plus its metrics."""
    id: str
    name: str
    metrics: ApplicationMetrics

