"""
API Schemas.

This module contains Pydantic models used for API request bodies and response validation.
These schemas define the interface contract between the client and the server.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

SITE_NAME_PATTERN = r"^[A-Za-z0-9._-]+$"


def _reject_dot_names(value: Optional[str]) -> Optional[str]:
    # "." and ".." would resolve to the storage root or above it
    if value is not None and set(value) == {"."}:
        raise ValueError("Site name cannot consist of dots only")
    return value


class SiteCreate(BaseModel):
    """
    Schema for registering a new site.

    A build script is generated from the runtime parameters when the site is created.
    """

    site_name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        pattern=SITE_NAME_PATTERN,
        description="Unique site name. Used as folder name in the site storage.",
        examples=["shop-frontend"],
    )
    path_source_code: str = Field(
        ...,
        min_length=1,
        description="Absolute path of the source checkout on the build host.",
        examples=["/var/www/html/shop-frontend"],
    )
    include_pm2: bool = Field(default=False, description="Restart the site with PM2 after the build.")
    port_pm2: Optional[int] = Field(default=None, ge=1, le=65535, description="Port of the PM2 process.")
    user_id: Optional[int] = Field(default=None, description="User registering the site.")

    @field_validator("site_name")
    @classmethod
    def site_name_not_dots(cls, value: Optional[str]) -> Optional[str]:
        return _reject_dot_names(value)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "site_name": "shop-frontend",
                "path_source_code": "/var/www/html/shop-frontend",
                "include_pm2": True,
                "port_pm2": 3001,
            }
        }
    )


class SiteUpdate(BaseModel):
    """Editable fields of a site. Omitted fields are left unchanged."""

    site_name: Optional[str] = Field(default=None, min_length=1, max_length=255, pattern=SITE_NAME_PATTERN)
    port_pm2: Optional[int] = Field(default=None, ge=1, le=65535)
    api_endpoint_url: Optional[str] = Field(default=None, max_length=1024)
    is_generate_env: Optional[bool] = None

    @field_validator("site_name")
    @classmethod
    def site_name_not_dots(cls, value: Optional[str]) -> Optional[str]:
        return _reject_dot_names(value)


class SiteRead(BaseModel):
    id: int
    site_name: str
    path_source_code: str
    sh_content_dir: str
    path_log: str
    port_pm2: Optional[int] = None
    api_endpoint_url: Optional[str] = None
    is_generate_env: bool
    last_user_build: Optional[int] = None
    last_build: Optional[datetime] = None
    last_build_success: Optional[datetime] = None
    last_build_fail: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SiteDetails(BaseModel):
    """Site metadata together with its build script and current ``.env`` file."""

    id: int
    site_name: str
    sh_content: str
    env_content: str
    last_path_log: str
    sh_content_dir: str
    created_at: datetime
    last_user_build: str
    last_build_success: Optional[datetime] = None
    last_build_fail: Optional[datetime] = None
    last_build: Optional[datetime] = None
    port_pm2: Optional[int] = None
    path_source_code: str
    api_endpoint_url: Optional[str] = None
    is_generate_env: bool


class BuildTrigger(BaseModel):
    user_id: Optional[int] = Field(default=None, description="User triggering the build. Receives the notification.")


class BuildQueued(BaseModel):
    status: str = Field(..., examples=["queued"])
    site_id: int
    history_id: int


class GroupBuildQueued(BaseModel):
    status: str = Field(..., examples=["queued"])
    group_id: int
    count: int
    history_ids: List[int]


class BuildStatusRead(BaseModel):
    status: str = Field(..., description="Status of the latest build, or 'unknown' when never built.")
    updated_at: Optional[datetime] = None
    history_id: Optional[int] = None


class BuildHistoryRead(BaseModel):
    id: int
    status: str
    output_excerpt: str
    created_at: datetime
    user_name: str
    output_log: Optional[str] = None
    duration: str


class LogContent(BaseModel):
    log_content: str
    site_name: str
    path_log: str


class LogFileEntry(BaseModel):
    filename: str
    path: str
    date: str
    timestamp: int


class LogFileContent(BaseModel):
    filename: str
    content: str


class SiteDeleted(BaseModel):
    success: bool = True
    messages: List[str] = Field(default_factory=list)


# =====================================================================
# Environment variables
# =====================================================================


class EnvVariableCreate(BaseModel):
    """
    Schema for creating an environment variable.

    A variable is global when neither ``group_name`` nor ``my_site_id`` is set.
    The value is encrypted before it is stored.
    """

    variable_name: str = Field(..., min_length=1, max_length=255, examples=["API_URL"])
    variable_value: str = Field(..., description="Plain text value.", examples=["https://api.example.com"])
    group_name: Optional[str] = Field(default=None, max_length=255, examples=["shop"])
    my_site_id: Optional[int] = Field(default=None)

    @field_validator("group_name")
    @classmethod
    def blank_group_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value


class EnvVariableUpdate(BaseModel):
    variable_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    variable_value: Optional[str] = None
    group_name: Optional[str] = Field(default=None, max_length=255)
    my_site_id: Optional[int] = None


class EnvVariableRead(BaseModel):
    id: int
    variable_name: str
    variable_value: Optional[str] = Field(default=None, description="Masked unless revealed.")
    group_name: Optional[str] = None
    my_site_id: Optional[int] = None
    scope: str
    created_at: datetime
    updated_at: datetime


class EnvVariablePage(BaseModel):
    data: List[EnvVariableRead]
    total: int
    limit: int
    offset: int


# =====================================================================
# Build groups
# =====================================================================


class BuildGroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["shop"])
    description: Optional[str] = None
    user_id: Optional[int] = None
    site_ids: List[int] = Field(default_factory=list, description="Sites in the group.")


class BuildGroupUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    site_ids: Optional[List[int]] = Field(default=None, description="Replaces the sites of the group when given.")


class BuildGroupRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    user_id: Optional[int] = None
    site_ids: List[int] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


# =====================================================================
# Parameters & users
# =====================================================================


class ParameterUpsert(BaseModel):
    value: Optional[str] = None
    type: str = Field(default="string", examples=["string", "boolean", "integer", "path", "email"])
    description: Optional[str] = None


class ParameterRead(BaseModel):
    id: int
    key: str
    value: Optional[str] = None
    type: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+$", max_length=255)


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# =====================================================================
# PM2 logs
# =====================================================================


class LogPage(BaseModel):
    """One page of a parsed PM2 log file, newest entries first."""

    data: List[Dict[str, Any]]
    current_page: int
    last_page: int
    per_page: int
    total: int
    prev_page_url: Optional[str] = None
    next_page_url: Optional[str] = None
    links: List[Dict[str, Any]]
    file_size: int
    file_size_formatted: Optional[str] = None


class AlertCreate(BaseModel):
    """Alert text forwarded to Telegram. Comma-separated values are sent one per line."""

    sms_message: str = Field(..., min_length=1, examples=["Disk usage 91%, host web-01, 2026-10-19 08:00"])

    @field_validator("sms_message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("sms_message cannot be blank")
        return value


# =====================================================================
# Build queue
# =====================================================================


class FailedJobRead(BaseModel):
    uuid: str
    name: str
    description: str
    exception: str
    failed_at: datetime


class QueueStatus(BaseModel):
    running: bool
    current: Optional[str] = None
    pending: int
    failed_count: int
    failed: List[FailedJobRead]


class QueueActionResult(BaseModel):
    success: bool = True
    message: str
