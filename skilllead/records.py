"""Domain records persisted by the record store.

Field names are snake_case in Python; every record also accepts and emits the
camelCase keys of the backup document.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import AfterValidator, Field, TypeAdapter

from .analysis_result import AnalysisContent, CamelModel

Role = Literal["student", "professional"]
ProfileStatus = Literal["draft", "confirmed"]
KeyStorage = Literal["session", "encrypted_local", "none"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive values; everything is stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class Table(str, Enum):
    """Record tables, keyed by the names used in backup documents."""

    USERS = "users"
    STUDENT_PROFILES = "studentProfiles"
    PROFESSIONAL_PROFILES = "professionalProfiles"
    ANALYSES = "analyses"
    CHAT_THREADS = "chatThreads"
    CHAT_MESSAGES = "chatMessages"
    SETTINGS = "settings"


class Record(CamelModel):
    id: Optional[int] = None


class User(Record):
    name: str
    role: Role
    is_guest: bool = False
    passphrase_protected: bool = False
    created_at: UtcDatetime = Field(default_factory=utcnow)
    updated_at: UtcDatetime = Field(default_factory=utcnow)


class ProfilePreferences(CamelModel):
    timeline: Literal["3-months", "6-months", "12-months"] = "6-months"
    budget: Literal["free", "budget-friendly", "premium"] = "budget-friendly"
    remote: bool = False
    relocation: bool = False
    learning_style: Literal["self-paced", "structured", "mentored"] = "self-paced"


class Education(CamelModel):
    level: str = ""
    school: str = ""
    degree: str = ""
    major: str = ""
    graduation_date: str = ""
    gpa: Optional[str] = None


class StudentProject(CamelModel):
    name: str
    description: str = ""
    technologies: List[str] = Field(default_factory=list)
    url: Optional[str] = None


class Internship(CamelModel):
    company: str
    role: str = ""
    duration: str = ""
    description: str = ""


class StudentSkill(CamelModel):
    name: str
    level: Literal["Beginner", "Intermediate", "Advanced"] = "Beginner"


class ProfessionalProject(CamelModel):
    name: str
    description: str = ""
    technologies: List[str] = Field(default_factory=list)
    impact: str = ""


class ProfessionalSkill(CamelModel):
    name: str
    level: Literal["Beginner", "Intermediate", "Advanced", "Expert"] = "Intermediate"


class SalaryRange(CamelModel):
    min: int = Field(default=0, ge=0)
    max: int = Field(default=0, ge=0)
    currency: str = "USD"


class ProfileBase(Record):
    user_id: int
    preferences: ProfilePreferences = Field(default_factory=ProfilePreferences)
    status: ProfileStatus = "draft"
    updated_at: UtcDatetime = Field(default_factory=utcnow)


class StudentProfile(ProfileBase):
    profile_type: Literal["student"] = "student"
    education: List[Education] = Field(default_factory=list)
    projects: List[StudentProject] = Field(default_factory=list)
    internships: List[Internship] = Field(default_factory=list)
    skills: List[StudentSkill] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    preferred_locations: List[str] = Field(default_factory=list)
    work_authorization: str = ""


class ProfessionalProfile(ProfileBase):
    profile_type: Literal["professional"] = "professional"
    company: str = ""
    role: str = ""
    years_experience: int = Field(default=0, ge=0)
    domains: List[str] = Field(default_factory=list)
    projects: List[ProfessionalProject] = Field(default_factory=list)
    stack: List[str] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)
    skills: List[ProfessionalSkill] = Field(default_factory=list)
    desired_roles: List[str] = Field(default_factory=list)
    salary_range: Optional[SalaryRange] = None
    preferred_locations: List[str] = Field(default_factory=list)


Profile = Annotated[Union[StudentProfile, ProfessionalProfile], Field(discriminator="profile_type")]
profile_adapter: TypeAdapter[Profile] = TypeAdapter(Profile)


def profile_table_for(role: Role) -> Table:
    if role == "student":
        return Table.STUDENT_PROFILES
    if role == "professional":
        return Table.PROFESSIONAL_PROFILES
    raise ValueError(f"Unknown profile role: {role!r}")


class Analysis(Record, AnalysisContent):
    user_id: int
    latest: bool = False
    version: int = Field(default=1, ge=1)
    created_at: UtcDatetime = Field(default_factory=utcnow)
    updated_at: UtcDatetime = Field(default_factory=utcnow)


class ChatThread(Record):
    user_id: int
    title: str
    created_at: UtcDatetime = Field(default_factory=utcnow)
    context_refs: List[str] = Field(default_factory=list)


class ChatMessage(Record):
    thread_id: int
    role: Literal["user", "assistant"]
    content: str
    created_at: UtcDatetime = Field(default_factory=utcnow)
    tokens: Optional[int] = Field(default=None, ge=0)
    annotations: Optional[Dict[str, Any]] = None


class AppSettings(Record):
    openai_key_stored: KeyStorage = "none"
    reduce_motion: bool = False
    theme: Literal["light", "dark", "system"] = "system"
    locale: str = "en"
    updated_at: UtcDatetime = Field(default_factory=utcnow)


RECORD_TYPES: Dict[Table, type[Record]] = {
    Table.USERS: User,
    Table.STUDENT_PROFILES: StudentProfile,
    Table.PROFESSIONAL_PROFILES: ProfessionalProfile,
    Table.ANALYSES: Analysis,
    Table.CHAT_THREADS: ChatThread,
    Table.CHAT_MESSAGES: ChatMessage,
    Table.SETTINGS: AppSettings,
}


__all__ = [
    "Analysis",
    "AppSettings",
    "ChatMessage",
    "ChatThread",
    "Education",
    "Internship",
    "KeyStorage",
    "ProfessionalProfile",
    "ProfessionalProject",
    "ProfessionalSkill",
    "Profile",
    "ProfileBase",
    "ProfilePreferences",
    "ProfileStatus",
    "RECORD_TYPES",
    "Record",
    "Role",
    "SalaryRange",
    "StudentProfile",
    "StudentProject",
    "StudentSkill",
    "Table",
    "User",
    "profile_adapter",
    "profile_table_for",
    "utcnow",
]
