"""User Schemas — registration input and public user data.

Invariants:
    - email validated by EmailStr and lower-cased before it reaches the service
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    timezone: str = Field("UTC", max_length=64)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty or whitespace")
        return v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    timezone: str
    created_at: datetime


class Participant(BaseModel):
    """Display data for the other side of an arrangement."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
