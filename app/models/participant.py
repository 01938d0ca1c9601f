from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Company:
    id: UUID
    name: str

    @staticmethod
    def new(*, name: str) -> Company:
        return Company(id=uuid4(), name=name)


@dataclass(frozen=True, slots=True)
class Participant:
    id: UUID
    first_name: str
    last_name: str
    email: str
    company_id: UUID | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @staticmethod
    def new(
        *,
        first_name: str,
        last_name: str,
        email: str,
        company_id: UUID | None = None,
    ) -> Participant:
        return Participant(
            id=uuid4(),
            first_name=first_name,
            last_name=last_name,
            email=email.strip().lower(),
            company_id=company_id,
        )
