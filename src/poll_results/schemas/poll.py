"""Pydantic v2 schemas for polls, options, votes, likes, reports and profiles."""

import enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from poll_results.lib.breakdown import Dimension, bucket_for_label

REPORT_TEXT_MAX_LENGTH = 300


class ReportReason(enum.StrEnum):
    """Reason codes accepted by the report function."""

    SPAM = "spam"
    HATE = "hate"
    NSFW = "nsfw"
    ILLEGAL = "illegal"
    PRIVACY = "privacy"
    OTHER = "other"


class Identity(BaseModel):
    """The acting user.

    Supplied by the caller; this package never persists or discovers it.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(min_length=1, description="Stable opaque user identifier")


class Poll(BaseModel):
    """A poll as listed by the polls table or the polls_popular view."""

    model_config = ConfigDict(extra="ignore")

    id: str
    question: str
    category: str
    owner_id: str | None = None
    created_at: datetime | None = None
    like_count: int | None = None
    description: str | None = None


class PollOption(BaseModel):
    """One selectable option of a poll."""

    model_config = ConfigDict(extra="ignore")

    id: str
    poll_id: str
    idx: int | None = None
    label: str
    image_url: str | None = None


class PollCreateRequest(BaseModel):
    """Input for creating a poll with its options."""

    question: str = Field(min_length=1)
    category: str = Field(min_length=1)
    options: list[str] = Field(min_length=2, description="Option labels in display order")
    description: str | None = None
    is_public: bool = True

    @field_validator("options")
    @classmethod
    def _strip_options(cls, v: list[str]) -> list[str]:
        labels = [label.strip() for label in v]
        if any(not label for label in labels):
            msg = "option labels must not be blank"
            raise ValueError(msg)
        return labels


class VoteResult(BaseModel):
    """Vote count for one option."""

    option_id: str
    count: int = Field(ge=0)


class ReportRequest(BaseModel):
    """Body sent to the report function."""

    poll_id: str
    reporter_user_id: str
    reason_code: ReportReason
    reason_text: str | None = None

    @field_validator("reason_text", mode="before")
    @classmethod
    def _trim_text(cls, v: str | None) -> str | None:
        if v is None:
            return None
        trimmed = str(v).strip()
        return trimmed[:REPORT_TEXT_MAX_LENGTH] or None


class ReportResult(BaseModel):
    """Outcome of a report submission."""

    model_config = ConfigDict(extra="ignore")

    status: str

    @property
    def already_reported(self) -> bool:
        return self.status == "ok_already_reported"


class Occupation(enum.StrEnum):
    """Occupation codes allowed by the profiles table."""

    STUDENT = "student"
    EMPLOYEE_FULLTIME = "employee_fulltime"
    EMPLOYEE_CONTRACT = "employee_contract"
    PART_TIME = "part_time"
    FREELANCER = "freelancer"
    SELF_EMPLOYED = "self_employed"
    PUBLIC_SERVANT = "public_servant"
    HOMEMAKER = "homemaker"
    UNEMPLOYED = "unemployed"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"

class ProfileUpdate(BaseModel):
    """Profile fields to write; unset fields are left untouched on upsert."""

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str | None = Field(default=None, min_length=1, max_length=40)
    gender: str | None = None
    age: int | None = Field(default=None, ge=13, le=99)
    prefecture_code: str | None = Field(default=None, pattern=r"^(JP-)?\d{1,2}$")
    occupation: Occupation | None = None
    avatar_value: str | None = None

    @field_validator("gender")
    @classmethod
    def _canonical_gender(cls, v: str | None) -> str | None:
        if v is None:
            return None
        bucket = bucket_for_label(Dimension.GENDER, v)
        if bucket is None:
            msg = f"Unknown gender: {v!r}"
            raise ValueError(msg)
        return bucket
