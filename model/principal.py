# model/principal.py
from pydantic import BaseModel, Field
from util.enums import Role


class Principal(BaseModel):
    """Authenticated caller, resolved once at the HTTP boundary."""

    id: str = Field(min_length=1)
    role: Role

    @property
    def reviewer_facing(self) -> bool:
        return self.role.reviewer_facing
