"""
Conversation Timeline - client-side merge of optimistic and durable messages.

Rules:
- A sent message is rendered at once as a provisional entry with a
  temporary id ("temp-...").
- A created-message event whose durable id is already present is ignored.
- Otherwise the first provisional entry from the same sender with the same
  trimmed body takes the durable id and data in place.
- Otherwise the durable message is added as new.
- A failed submission removes its provisional entry and hands the body
  back for the composer.
- A deleted-message event removes the matching durable entry, if any.

Durable entries are always kept in (created_at, id) order, whatever order
their events arrive in. Provisional entries stay where they were added.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Iterable, Optional
from uuid import uuid4

TEMP_PREFIX = "temp-"


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass(frozen=True)
class TimelineMessage:
    id: str
    conversation_id: str
    sender_id: str
    body: str
    created_at: datetime
    provisional: bool = False
    sender_name: Optional[str] = None
    sender_email: Optional[str] = None

    @property
    def order_key(self) -> tuple[datetime, str]:
        return (self.created_at, self.id)

    @classmethod
    def from_wire(cls, payload: dict[str, Any]) -> TimelineMessage:
        """Build from a camelCase MessageDTO payload."""
        sender = payload.get("sender") or {}
        return cls(
            id=payload["id"],
            conversation_id=payload["conversationId"],
            sender_id=sender.get("id", ""),
            body=payload["body"],
            created_at=_parse_timestamp(payload["createdAt"]),
            sender_name=sender.get("name"),
            sender_email=sender.get("email"),
        )


class ConversationTimeline:
    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        self._entries: list[TimelineMessage] = []

    @property
    def messages(self) -> list[TimelineMessage]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def find(self, message_id: str) -> Optional[TimelineMessage]:
        index = self._index_of(message_id)
        return self._entries[index] if index is not None else None

    # ==================== OPTIMISTIC SEND ====================

    def add_provisional(
        self,
        body: str,
        sender_id: str,
        sender_name: Optional[str] = None,
        temp_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TimelineMessage:
        entry = TimelineMessage(
            id=temp_id or f"{TEMP_PREFIX}{uuid4()}",
            conversation_id=self.conversation_id,
            sender_id=sender_id,
            body=body.strip(),
            created_at=now or datetime.now(timezone.utc),
            provisional=True,
            sender_name=sender_name,
        )
        self._entries.append(entry)
        return entry

    def confirm_provisional(self, temp_id: str, durable: TimelineMessage) -> bool:
        """
        Apply a successful acknowledgement to the provisional entry it belongs to.

        Returns True if the timeline changed.
        """
        temp_index = self._index_of(temp_id)
        if self._index_of(durable.id) is not None:
            # The broadcast already delivered it; drop the leftover placeholder
            if temp_index is not None:
                del self._entries[temp_index]
                return True
            return False
        if temp_index is None:
            self._insert_durable(durable)
            return True
        self._replace_at(temp_index, durable)
        return True

    def fail_provisional(self, temp_id: str) -> Optional[str]:
        """Remove a provisional entry after a failed send; returns its body."""
        index = self._index_of(temp_id)
        if index is None or not self._entries[index].provisional:
            return None
        return self._entries.pop(index).body

    # ==================== SERVER EVENTS ====================

    def apply_created(self, message: TimelineMessage | dict[str, Any]) -> bool:
        """
        Merge a message-created event. Returns True if the timeline changed.

        The same message may arrive twice (conversation room and user room).
        """
        if isinstance(message, dict):
            message = TimelineMessage.from_wire(message)
        if message.conversation_id != self.conversation_id:
            return False
        return self._merge(message)

    def apply_deleted(self, payload: dict[str, Any]) -> bool:
        if payload.get("conversationId") != self.conversation_id:
            return False
        index = self._index_of(payload.get("messageId"))
        if index is None or self._entries[index].provisional:
            return False
        del self._entries[index]
        return True

    def load_page(self, messages: Iterable[TimelineMessage | dict[str, Any]]) -> int:
        """
        Merge a history page. Returns how many messages were merged.

        Runs the same merge as a created-message event, so a page holding the
        durable copy of a still-provisional entry replaces that entry.
        """
        merged = 0
        for message in messages:
            if isinstance(message, dict):
                message = TimelineMessage.from_wire(message)
            if message.conversation_id != self.conversation_id:
                continue
            if self._merge(message):
                merged += 1
        return merged

    # ==================== INTERNALS ====================

    def _merge(self, message: TimelineMessage) -> bool:
        if self._index_of(message.id) is not None:
            return False

        body = message.body.strip()
        for index, entry in enumerate(self._entries):
            if (
                entry.provisional
                and entry.sender_id == message.sender_id
                and entry.body.strip() == body
            ):
                self._replace_at(index, message)
                return True

        self._insert_durable(message)
        return True

    def _index_of(self, message_id: Optional[str]) -> Optional[int]:
        if not message_id:
            return None
        for index, entry in enumerate(self._entries):
            if entry.id == message_id:
                return index
        return None

    def _replace_at(self, index: int, durable: TimelineMessage) -> None:
        self._entries[index] = replace(durable, provisional=False)
        if not self._in_order_at(index):
            moved = self._entries.pop(index)
            self._insert_durable(moved)

    def _in_order_at(self, index: int) -> bool:
        key = self._entries[index].order_key
        for before in reversed(self._entries[:index]):
            if not before.provisional:
                if before.order_key > key:
                    return False
                break
        for after in self._entries[index + 1 :]:
            if not after.provisional:
                return after.order_key > key
        return True

    def _insert_durable(self, message: TimelineMessage) -> None:
        message = replace(message, provisional=False)
        for index, entry in enumerate(self._entries):
            if not entry.provisional and entry.order_key > message.order_key:
                self._entries.insert(index, message)
                return
        self._entries.append(message)
