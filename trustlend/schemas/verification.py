"""Verification Schemas — one-time code request and check."""

from typing import Literal

from pydantic import BaseModel, EmailStr, Field


class VerificationRequest(BaseModel):
    email: EmailStr
    purpose: Literal["signup", "password_reset"] = "signup"


class VerificationCheck(BaseModel):
    email: EmailStr
    purpose: Literal["signup", "password_reset"] = "signup"
    code: str = Field(pattern=r"^\d{6}$")


class VerificationRequestResponse(BaseModel):
    sent: bool
    expires_in_minutes: int


class VerificationCheckResponse(BaseModel):
    verified: bool = True
