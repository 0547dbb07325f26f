# Pydantic schemas

from pydantic import BaseModel, Field, field_validator
from datetime import date


class Event(BaseModel):
    """One interaction record from the event log"""

    occurred_on: date
    account_id: str = Field(..., min_length=1, max_length=255)
    user_id: str = Field(..., min_length=1, max_length=255)

    model_config = {"frozen": True}

    @field_validator('account_id', 'user_id')
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError('Field cannot be empty or whitespace')
        return v.strip()
