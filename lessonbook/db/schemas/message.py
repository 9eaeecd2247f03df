from datetime import datetime
from pydantic import BaseModel


class MessageCreate(BaseModel):
    content: str


class Message(BaseModel):
    id: str
    sender_id: str
    sender_name: str
    content: str
    timestamp: datetime
    is_read: bool

    class Config:
        from_attributes = True
