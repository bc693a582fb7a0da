"""
User Entity - an immutable reference to an authenticated person.
"""

from dataclasses import dataclass
from typing import Optional
from chatrelay.domain.value_objects.user_id import UserId
from chatrelay.domain.value_objects.user_email import UserEmail


@dataclass(frozen=True)
class User:
    id: UserId
    email: UserEmail
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.email.value
