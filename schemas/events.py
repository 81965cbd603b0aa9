from pydantic import BaseModel, Field, field_validator
from typing import Any


class GoLivePayload(BaseModel):
    account_id: str = Field(min_length=1)

    @field_validator("account_id", mode="before")
    @classmethod
    def coerce_account_id(cls, value):
        # bool is an int subclass; True is never an account id
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise ValueError("account_id must be a string or integer")
        return str(value)

class JoinStreamPayload(BaseModel):
    account_id: str = Field(min_length=1)
    target_account_id: str = Field(min_length=1)

class DirectSignalPayload(BaseModel):
    payload: Any = None
    target_account_id: str = Field(min_length=1)

class MatchedSignalPayload(BaseModel):
    payload: Any = None
    target: str = Field(min_length=1)
