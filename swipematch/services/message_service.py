"""Message store for matched users.

Messages sit outside the swipe write path; they only share `match_id` with
the matching core.
"""

from typing import List, Optional

from swipematch.models.message import Message, MessageCreate
from swipematch.storage.base import Storage
from swipematch.utils.clock import Clock, utcnow
from swipematch.utils.errors import NotFoundError, ValidationError
from swipematch.utils.logging import get_logger

logger = get_logger(__name__)


class MessageService:
    def __init__(self, storage: Storage, clock: Clock = utcnow) -> None:
        self._storage = storage
        self._clock = clock

    def send_message(self, data: MessageCreate, timeout: Optional[float] = None) -> Message:
        """
        Store a message between the two members of a match.

        Raises:
            NotFoundError: If the match does not exist.
            ValidationError: If sender and receiver are not the two members of the match.
        """
        with self._storage.unit_of_work(timeout=timeout) as uow:
            match = uow.get_match(data.match_id)
            if match is None:
                raise NotFoundError(f"Match not found: {data.match_id}", details={"match_id": data.match_id})
            if {data.sender_id, data.receiver_id} != {match.user1_id, match.user2_id}:
                raise ValidationError(
                    "Sender and receiver must be the members of the match",
                    details={"match_id": data.match_id, "sender_id": data.sender_id, "receiver_id": data.receiver_id},
                )
            message = uow.insert_message(data, self._clock())
        logger.info("Message stored", match_id=data.match_id, message_id=message.id, sender_id=data.sender_id)
        return message

    def get_messages(self, match_id: int, timeout: Optional[float] = None) -> List[Message]:
        with self._storage.unit_of_work(timeout=timeout) as uow:
            return uow.list_messages(match_id)

    def unread_count(self, user_id: int, timeout: Optional[float] = None) -> int:
        with self._storage.unit_of_work(timeout=timeout) as uow:
            return uow.count_unread(user_id)
