from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from jobtrack.models.enums import ApplicationType, InterviewType, StatusType, TestType


class ApplicationCreate(BaseModel):
    company: str = Field(min_length=1, max_length=70)
    position: str = Field(min_length=1, max_length=100)
    website: Optional[str] = Field(default=None, max_length=255)
    application_type: ApplicationType


class ApplicationUpdate(BaseModel):
    company: Optional[str] = Field(default=None, min_length=1, max_length=70)
    position: Optional[str] = Field(default=None, min_length=1, max_length=100)
    website: Optional[str] = Field(default=None, max_length=255)
    application_type: Optional[ApplicationType] = None


class ApplicationStatusCreate(BaseModel):
    status_type: StatusType
    test_type: Optional[TestType] = None
    interview_type: Optional[InterviewType] = None
    notes: Optional[str] = Field(default=None, max_length=5000)


class ApplicationStatusOut(BaseModel):
    id: int
    application_id: int
    created_by: int
    status_type: StatusType
    test_type: Optional[TestType] = None
    interview_type: Optional[InterviewType] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ApplicationOut(BaseModel):
    id: int
    company: str
    position: str
    website: Optional[str] = None
    application_type: ApplicationType
    created_by: int
    created_at: datetime
    updated_at: datetime
    current_status: Optional[ApplicationStatusOut] = None

    model_config = ConfigDict(from_attributes=True)


class ApplicationDetailOut(ApplicationOut):
    history: List[ApplicationStatusOut] = []
