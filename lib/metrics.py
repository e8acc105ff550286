"""
Reduction of one application's resource collections into usage metrics.
"""
import logging
from typing import Any, Hashable, Iterable, Optional, Sequence, Set, Union

from .constants import STATUS_ACTIVE, STATUS_DELETED
from .content import count_tagged_nodes
from .models import (
    ApplicationMetrics,
    GroupRecord,
    MessageRecord,
    ThreadRecord,
    UserRecord,
)

logger = logging.getLogger(__name__)


def _add(current: Union[int, float], value: Optional[float]) -> Union[int, float]:
    return current + value if value is not None else current


def _participant_key(user_id: Any) -> Hashable:
    """Set key for a userID; list or object ids count once per occurrence."""
    if isinstance(user_id, (list, dict)):
        return ('object', id(user_id))
    # True and 1 are distinct ids
    return (type(user_id) is bool, user_id)


def aggregate_user_metrics(metrics: ApplicationMetrics, users: Sequence[UserRecord]) -> None:
    metrics.total_users = len(users)
    for user in users:
        if user.status == STATUS_ACTIVE:
            metrics.active_users += 1
        elif user.status == STATUS_DELETED:
            metrics.deleted_users += 1


def aggregate_group_metrics(metrics: ApplicationMetrics, groups: Sequence[GroupRecord]) -> None:
    metrics.total_groups = len(groups)
    for group in groups:
        if group.status == STATUS_ACTIVE:
            metrics.active_groups += 1
        elif group.status == STATUS_DELETED:
            metrics.deleted_groups += 1
        if group.connect_to_slack:
            metrics.slack_connected_groups += 1


def aggregate_thread_metrics(metrics: ApplicationMetrics, threads: Sequence[ThreadRecord]) -> None:
    """Thread counters; non-numeric message counts contribute nothing."""
    participants: Set = set()
    metrics.total_threads = len(threads)
    for thread in threads:
        if thread.resolved:
            metrics.resolved_threads += 1
        metrics.thread_messages = _add(metrics.thread_messages, thread.total)
        metrics.action_messages = _add(metrics.action_messages, thread.action_messages)
        metrics.user_messages = _add(metrics.user_messages, thread.user_messages)
        metrics.deleted_messages = _add(metrics.deleted_messages, thread.deleted_messages)
        participants.update(_participant_key(user_id) for user_id in thread.participant_ids)
    metrics.thread_participants = len(participants)


def aggregate_message_metrics(metrics: ApplicationMetrics, messages: Sequence[MessageRecord]) -> None:
    metrics.total_messages = len(messages)
    for message in messages:
        metrics.reactions += message.reaction_count
        metrics.attachments += message.attachment_count
        metrics.mentions += count_tagged_nodes(message.content)


def aggregate_application_metrics(
    users: Iterable[UserRecord],
    groups: Iterable[GroupRecord],
    threads: Iterable[ThreadRecord],
    messages: Iterable[MessageRecord],
) -> ApplicationMetrics:
    """
    Fold one application's users, groups, threads and messages into metrics.

    Every collection is read once; missing optional fields were already
    normalized to None/empty by the record models and count as zero here.
    """
    metrics = ApplicationMetrics()
    aggregate_user_metrics(metrics, list(users))
    aggregate_group_metrics(metrics, list(groups))
    aggregate_thread_metrics(metrics, list(threads))
    aggregate_message_metrics(metrics, list(messages))
    logger.debug(
        f"Aggregated {metrics.total_users} users, {metrics.total_groups} groups, "
        f"{metrics.total_threads} threads, {metrics.total_messages} messages"
    )
    return metrics
