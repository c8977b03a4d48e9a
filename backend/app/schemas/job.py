from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..utils.error_handlers import ValidationError
from ..utils.validation import validate_email

Industry = Literal["Business", "Information Technology", "Banking", "Education/Training", "Telecommunication"]
JobType = Literal["Full-Time", "Part-Time"]
Education = Literal["Bachelors", "Masters", "Phd"]
Experience = Literal["Entry level", "1 Year", "2 Years", "3 Years", "4 Years", "5 Years +"]


def _to_utc(v: datetime | None) -> datetime | None:
    if v is None:
        return None
    return v.replace(tzinfo=timezone.utc) if v.tzinfo is None else v.astimezone(timezone.utc)


class _JobFields(BaseModel):
    # Accept both `jobType` (API clients) and `job_type`.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("title", "description", "address", "company", check_fields=False)
    @classmethod
    def _strip(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("email", check_fields=False)
    @classmethod
    def _email(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        try:
            return validate_email(v)
        except ValidationError as e:
            raise ValueError(e.message) from None

    @field_validator("industry", check_fields=False)
    @classmethod
    def _dedupe_industry(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        return list(dict.fromkeys(v))

    @field_validator("posting_date", "last_date", check_fields=False)
    @classmethod
    def _utc(cls, v: datetime | None) -> datetime | None:
        return _to_utc(v)


class JobCreate(_JobFields):
    title: str = Field(max_length=100)
    description: str = Field(max_length=1000)
    email: str | None = None
    address: str = Field(max_length=255)
    company: str = Field(max_length=255)
    industry: list[Industry] = Field(min_length=1)
    job_type: JobType
    min_education: Education
    positions: int = Field(default=1, ge=1)
    experience: Experience
    salary: int = Field(ge=0)
    posting_date: datetime | None = None
    last_date: datetime | None = None


class JobUpdate(_JobFields):
    title: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    email: str | None = None
    address: str | None = Field(default=None, max_length=255)
    company: str | None = Field(default=None, max_length=255)
    industry: list[Industry] | None = Field(default=None, min_length=1)
    job_type: JobType | None = None
    min_education: Education | None = None
    positions: int | None = Field(default=None, ge=1)
    experience: Experience | None = None
    salary: int | None = Field(default=None, ge=0)
    last_date: datetime | None = None
