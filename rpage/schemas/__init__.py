"""Pydantic schemas used across the project. Field names are camelCase on the wire."""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class DeletedId(CamelModel):
    id: str


class MessageResponse(CamelModel):
    success: bool = True
    message: str


class RunRequest(CamelModel):
    id: str = Field(..., min_length=1)
    name: str = ""
    script: str = ""


class RunResultResponse(CamelModel):
    success: bool
    output: str = ""
    data: Any = None
    error: Optional[str] = None


class AutomationCreate(CamelModel):
    id: Optional[str] = None
    name: Optional[str] = None
    description: str = ""
    script: Optional[str] = None


class AutomationUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    script: Optional[str] = None


class AutomationResponse(CamelModel):
    id: str
    name: str
    description: str = ""
    script: str
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class AutomationListResponse(CamelModel):
    success: bool = True
    data: list[AutomationResponse]


class AutomationDetailResponse(CamelModel):
    success: bool = True
    data: AutomationResponse


class AutomationDeleteResponse(CamelModel):
    success: bool = True
    data: DeletedId


class OutputResponse(CamelModel):
    id: str
    automation_id: str
    name: str
    type: str
    data: Optional[str] = None
    timestamp: datetime


class OutputListResponse(CamelModel):
    success: bool = True
    files: list[OutputResponse]
    count: int
    total: int
    page: int
    limit: int
    has_more: bool


class OutputTypeListResponse(CamelModel):
    success: bool = True
    files: list[OutputResponse]
    count: int


class OutputDetailResponse(CamelModel):
    success: bool = True
    data: OutputResponse


class OutputDeleteResponse(CamelModel):
    success: bool = True
    data: DeletedId


class CleanupResult(CamelModel):
    deleted: int
    old_outputs_removed: int
    non_screenshots_removed: int


class CleanupResponse(CamelModel):
    success: bool = True
    message: str
    data: CleanupResult


class LogResponse(CamelModel):
    id: str
    automation_id: str
    automation_name: str
    status: str
    output: str
    timestamp: datetime


class LogListResponse(CamelModel):
    success: bool = True
    data: list[LogResponse]
    total: int
    page: int
    limit: int
    has_more: bool


class SettingsResponse(CamelModel):
    success: bool = True
    data: dict[str, Any] = Field(default_factory=dict)
