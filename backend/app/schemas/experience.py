from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.schemas.validators import WebUrl, blank_to_none, coerce_date

WorkType = Literal["Remote", "On Site", "Hybrid"]


# ---------- INPUT SCHEMAS ----------

class ExperienceCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    company: str = Field(min_length=1, max_length=255)
    url: Optional[WebUrl] = None
    location: Optional[str] = Field(default=None, max_length=255)
    type: WorkType
    start_date: date
    end_date: Optional[date] = None
    description: Optional[str] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v):
        return coerce_date(v)

    @field_validator("url", mode="before")
    @classmethod
    def blank_url(cls, v):
        return blank_to_none(v)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_date is not None and self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class ExperienceUpdate(BaseModel):
    """All fields optional. Sending end_date as "" clears it."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    company: Optional[str] = Field(default=None, min_length=1, max_length=255)
    url: Optional[WebUrl] = None
    location: Optional[str] = Field(default=None, max_length=255)
    type: Optional[WorkType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: Optional[str] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v):
        return coerce_date(v)

    @field_validator("url", mode="before")
    @classmethod
    def blank_url(cls, v):
        return blank_to_none(v)


# ---------- OUTPUT SCHEMAS ----------

class ExperienceOut(BaseModel):
    id: int
    title: str
    company: str
    url: Optional[str] = None
    location: Optional[str] = None
    type: str
    start_date: date = Field(serialization_alias="startDate")
    end_date: Optional[date] = Field(default=None, serialization_alias="endDate")
    description: Optional[str] = None
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")

    model_config = ConfigDict(from_attributes=True)
