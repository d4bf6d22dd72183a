from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.schemas.validators import WebUrl, blank_to_none, coerce_date


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1, max_length=500)
    url: Optional[WebUrl] = None
    start_date: date
    end_date: Optional[date] = None
    technologies: Optional[str] = Field(default=None, max_length=500)

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


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    url: Optional[WebUrl] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    technologies: Optional[str] = Field(default=None, max_length=500)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v):
        return coerce_date(v)

    @field_validator("url", mode="before")
    @classmethod
    def blank_url(cls, v):
        return blank_to_none(v)


class ProjectOut(BaseModel):
    id: int
    name: str
    description: str
    url: Optional[str] = None
    start_date: date = Field(serialization_alias="startDate")
    end_date: Optional[date] = Field(default=None, serialization_alias="endDate")
    technologies: Optional[str] = None
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")

    model_config = ConfigDict(from_attributes=True)
