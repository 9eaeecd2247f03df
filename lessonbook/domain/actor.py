from __future__ import annotations

from dataclasses import dataclass
from enum import Enum as PyEnum


class UserRole(str, PyEnum):
    student = "student"
    trainer = "trainer"
    admin = "admin"


@dataclass(frozen=True, slots=True)
class Actor:
    id: str
    name: str
    email: str = ""
    role: UserRole = UserRole.student

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin

    @property
    def is_trainer(self) -> bool:
        return self.role == UserRole.trainer
