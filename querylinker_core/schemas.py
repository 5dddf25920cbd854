from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    # account request bodies arrive camelCase from the web client; snake_case is accepted too
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- search ----------

class EnhancedSearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str
    systems: list[str] = []
    max_results: int = Field(10, alias="maxResults", ge=1, le=100)
    use_semantic: bool = True

class Suggestion(BaseModel):
    system: str
    title: str
    id: str
    snippet: str
    link: str
    score: float | None = None
    external_url: str | None = None
    author: str | None = None
    created_date: str | None = None
    icon: str | None = None
    actions: list[str] = ["link", "open"]

class EnhancedSearchResponse(BaseModel):
    suggestions: list[Suggestion]
    total_found: int
    search_keywords: list[str]
    search_time_ms: int
    source: str

class SystemInfo(BaseModel):
    key: str
    name: str
    icon: str
    features: list[str]
    connected: bool

class SolutionIngestRequest(BaseModel):
    system: str
    external_id: str
    title: str
    content: str
    url: str | None = None
    author: str | None = None
    tags: list[str] = []

class SolutionIngestResult(BaseModel):
    solution_id: int
    system: str
    external_id: str
    num_chunks: int
    unchanged: bool

class LinkRequest(BaseModel):
    incident_number: str = ""
    suggestion_id: str = ""
    system: str
    title: str = ""
    link: str | None = None

class LinkResponse(BaseModel):
    status: str
    message: str
    link_id: str | None = None

class IncidentLinkOut(BaseModel):
    link_id: str
    incident_number: str
    suggestion_id: str
    system: str
    title: str
    link: str | None = None
    user_id: int | None = None
    created_at: datetime

class SyncTriggerRequest(BaseModel):
    system: str | None = None

class SyncTriggerResponse(BaseModel):
    success: bool
    message: str
    systems: list[str]

class SyncStatusOut(BaseModel):
    system: str
    has_connector: bool
    last_sync: datetime | None = None
    last_sync_status: str
    last_sync_error: str | None = None
    total_synced: int
    solutions: int

class SyncStatusResponse(BaseModel):
    systems: list[SyncStatusOut]
    last_updated: datetime


# ---------- auth ----------

class SignupRequest(CamelModel):
    full_name: str
    email: str
    password: str

class LoginRequest(CamelModel):
    email: str
    password: str
    remember_me: bool = False

class ForgotPasswordRequest(CamelModel):
    email: str

class ResetPasswordRequest(CamelModel):
    token: str
    new_password: str

class GoogleCallbackRequest(CamelModel):
    code: str | None = None

class GoogleCredentialRequest(CamelModel):
    credential: str | None = None

class UserOut(BaseModel):
    id: int
    email: str
    full_name: str
    role: str
    avatar_url: str | None = None
    preferences: dict = {}

class ProfileOut(UserOut):
    email_verified: bool
    created_at: datetime | None = None
    last_login: datetime | None = None

class ProfileResponse(BaseModel):
    success: bool
    user: ProfileOut

class ProfileUpdateRequest(CamelModel):
    full_name: str | None = None
    avatar_url: str | None = None
    preferences: dict | None = None

class AuthResponse(BaseModel):
    success: bool
    message: str | None = None
    token: str | None = None
    user: UserOut | None = None
    is_new_user: bool | None = None

class MessageResponse(BaseModel):
    success: bool
    message: str

class AuthUrlResponse(BaseModel):
    success: bool
    auth_url: str


# ---------- email ----------

class EmailTestRequest(BaseModel):
    email: str

class EmailResultOut(BaseModel):
    email_sent: bool
    provider: str
    message_id: str | None = None
    delivery_time_ms: int
    preview_url: str | None = None
    error: str | None = None

class EmailTestResponse(BaseModel):
    success: bool
    message: str
    result: EmailResultOut

class EmailStatusResponse(BaseModel):
    success: bool
    provider: str
    configured: bool
    from_email: str
    recommendations: list[str]
