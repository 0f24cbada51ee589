"""Conversation Grouping — derives a user's inbox from the flat message log.

Invariants:
    - PURE: operates on message snapshots already loaded by the shell
    - One entry per counterpart: the most recent message exchanged with them
    - Result ordered newest-first
"""

from typing import Iterable
from uuid import UUID

from datanest.core.repository_protocols import MessageLike


def counterpart_of(message: MessageLike, user_id: UUID) -> UUID:
    return message.receiver_id if message.sender_id == user_id else message.sender_id


def latest_per_counterpart(
    messages_newest_first: Iterable[MessageLike], user_id: UUID,
) -> list[MessageLike]:
    """Input must already be sorted newest-first; first hit per counterpart wins."""
    latest: dict[UUID, MessageLike] = {}
    for message in messages_newest_first:
        latest.setdefault(counterpart_of(message, user_id), message)
    return list(latest.values())
