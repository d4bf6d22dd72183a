from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.validators import WebUrl, blank_to_none


# ---------- INPUT SCHEMAS ----------

class CertificationUpdate(BaseModel):
    """
    Partial metadata update. Dates are strings in any supported format and are
    parsed by the service; "" clears expiry_date.
    """

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    issuer: Optional[str] = Field(default=None, min_length=1, max_length=255)
    issue_date: Optional[str] = None
    expiry_date: Optional[str] = None
    credential_id: Optional[str] = Field(default=None, max_length=255)
    credential_url: Optional[WebUrl] = None
    description: Optional[str] = None

    @field_validator("credential_url", mode="before")
    @classmethod
    def blank_credential_url(cls, v):
        return blank_to_none(v)


# ---------- OUTPUT SCHEMAS ----------

class CertificationOut(BaseModel):
    id: int
    title: str
    issuer: str
    issue_date: date
    expiry_date: Optional[date] = None
    credential_id: Optional[str] = None
    credential_url: Optional[str] = None
    file_url: str
    file_name: str
    original_name: str
    file_size: int
    mime_type: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UploadedFileOut(BaseModel):
    id: int
    title: str
    issuer: str
    issue_date: date
    file_url: str
    file_name: str
    original_name: str

    model_config = ConfigDict(from_attributes=True)


class UploadErrorOut(BaseModel):
    original: str
    error: str


class BatchUploadOut(BaseModel):
    message: str = "Files upload completed"
    status: str
    total: int
    successful: int
    failed: int
    files: list[UploadedFileOut] = []
    errors: list[UploadErrorOut] = []
