from pydantic import BaseModel, Field, field_validator
from pydantic_core import PydanticCustomError
from typing import List, Optional
from datetime import datetime
import re
import uuid


EMAIL_PATTERN = re.compile(r"^[\w.+-]+@[\w-]+(\.[\w-]+)*\.[A-Za-z]{2,}$")


def _check_length(value: Optional[str], *, max_length: Optional[int] = None,
                  min_length: Optional[int] = None, message: str) -> Optional[str]:
    if value is None:
        return value
    if max_length is not None and len(value) > max_length:
        raise PydanticCustomError("string_length", message)
    if min_length is not None and len(value) < min_length:
        raise PydanticCustomError("string_length", message)
    return value


def _check_email(value: str, message: str) -> str:
    candidate = value.strip()
    if not EMAIL_PATTERN.match(candidate):
        raise PydanticCustomError("email", message)
    return candidate


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value if value.strip() else None


class QuoteRequest(BaseModel):
    """Parameters of a quote the user asks for."""
    famous_person: Optional[str] = Field(
        None,
        alias="famousPerson",
        description="The name of a famous person to emulate for the quote (optional).",
    )
    tone: Optional[str] = Field(
        None,
        description="The desired tone of the quote (e.g., inspirational, humorous, profound) (optional).",
    )
    quote_type: str = Field(
        alias="quoteType",
        description="A description of the type of quote you want (e.g., 'a witty remark about Mondays').",
    )

    class Config:
        populate_by_name = True

    @field_validator("famous_person")
    @classmethod
    def _famous_person_length(cls, value: Optional[str]) -> Optional[str]:
        value = _check_length(value, max_length=100, message="Name cannot exceed 100 characters.")
        return _blank_to_none(value)

    @field_validator("tone")
    @classmethod
    def _tone_length(cls, value: Optional[str]) -> Optional[str]:
        value = _check_length(value, max_length=50, message="Tone cannot exceed 50 characters.")
        return _blank_to_none(value)

    @field_validator("quote_type")
    @classmethod
    def _quote_type_length(cls, value: str) -> str:
        _check_length(
            value, min_length=10,
            message="Please describe the type of quote in at least 10 characters.",
        )
        return _check_length(value, max_length=500, message="Description cannot exceed 500 characters.")


class QuoteResponse(BaseModel):
    quote: str


class InputVerdict(BaseModel):
    """Outcome of screening one user-supplied field."""
    rejected: bool
    reason: Optional[str] = None
    rule: Optional[str] = None


class SendEmailRequest(BaseModel):
    email: str
    quote: str

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        return _check_email(value, "Invalid email address format.")

    @field_validator("quote")
    @classmethod
    def _quote_length(cls, value: str) -> str:
        return _check_length(value, min_length=5, message="Quote content is too short.")


class SubscribeRequest(BaseModel):
    email: str
    quote: str  # Initial quote included in the confirmation email
    famous_person: Optional[str] = Field(None, alias="famousPerson")
    tone: Optional[str] = None
    quote_type: str = Field(alias="quoteType")

    class Config:
        populate_by_name = True

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        return _check_email(value, "Invalid email address format.")

    @field_validator("famous_person", "tone")
    @classmethod
    def _optional_text(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)


class CheckEmailRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        return _check_email(value, "Invalid email format.")


class Subscription(BaseModel):
    """A daily quote subscription."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    email: str
    famous_person: Optional[str] = None
    tone: Optional[str] = None
    quote_type: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def key(self) -> tuple:
        """Uniqueness key shared by the in-memory and Supabase stores."""
        return (self.email.lower(), self.famous_person, self.tone, self.quote_type)


class DispatchOutcome(BaseModel):
    subscription_id: str
    email: str
    status: str  # sent, skipped, failed
    detail: Optional[str] = None


class DispatchReport(BaseModel):
    message: str
    processed: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    outcomes: List[DispatchOutcome] = Field(default_factory=list)
