from datetime import datetime
import uuid

from pydantic import BaseModel, Field

from ..core.constants import SYSTEM_ACTOR, SYSTEM_ACTOR_NAME


class Message(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    sender_id: str
    sender_name: str
    content: str
    timestamp: datetime
    is_read: bool = False

    @classmethod
    def system(cls, content: str, timestamp: datetime) -> "Message":
        return cls(
            sender_id=SYSTEM_ACTOR,
            sender_name=SYSTEM_ACTOR_NAME,
            content=content,
            timestamp=timestamp,
        )

    @property
    def is_system(self) -> bool:
        return self.sender_id == SYSTEM_ACTOR
