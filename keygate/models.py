"""Data models for the key system"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class KeyRecord(BaseModel):
    """A single-use key as stored in keys.json.

    Files written by the first version of the service only carry
    ``{"key": ..., "used": ...}``; those load with the timestamps and
    links left empty.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(validation_alias=AliasChoices("id", "key"), min_length=1)
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    used: bool = False
    used_at: Optional[datetime] = Field(default=None, alias="usedAt")
    short_link: Optional[str] = Field(default=None, alias="shortLink")
    original_link: Optional[str] = Field(default=None, alias="originalLink")

    @field_validator("created_at", "used_at")
    @classmethod
    def _assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def _check_use_state(self) -> "KeyRecord":
        if not self.used and self.used_at is not None:
            raise ValueError("usedAt set on an unused key")
        if self.used_at and self.created_at and self.used_at < self.created_at:
            raise ValueError("usedAt earlier than createdAt")
        return self

    def is_expired(self, now: datetime, window: timedelta) -> bool:
        """True when the key is unused and older than the window.

        Keys without a creation time never expire.
        """
        if self.used or self.created_at is None:
            return False
        return now - self.created_at > window

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class RedemptionResult(BaseModel):
    """Outcome of redeeming an existing key."""

    valid: bool
    reason: Optional[str] = None  # "already_used" | "expired"
    record: KeyRecord

    @property
    def message(self) -> str:
        if self.valid:
            return "Key válida"
        if self.reason == "expired":
            return "Key expirada"
        return "Key já foi utilizada"


class KeyStats(BaseModel):
    total: int
    used: int
    available: int
