"""
Database Schemas

MongoDB collection schemas as Pydantic models. Field aliases are the keys
stored in the documents (and sent by the landing page / dashboards):
- Applicant -> "applicants"
- Recruiter -> "agents" / "references"
"""
from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

StatusType = Literal["New", "Contacted", "In Review", "Follow-Up", "Hired", "Rejected"]
STATUSES = ("New", "Contacted", "In Review", "Follow-Up", "Hired", "Rejected")
DEFAULT_STATUS = "New"

WORKING_HOURS = ("Morning", "Afternoon", "Evening")
WEEKLY_AVAILABILITY = ("12 hrs", "20 hrs", "30+ hrs")

RoleType = Literal["admin", "agent", "reference"]


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegistrationRequest(_Document):
    """Landing page form payload. Every field defaults to empty so that
    missing values come back as field errors rather than a schema error."""
    full_name: str = Field("", alias="fullName")
    email: str = ""
    phone: str = ""
    city: str = ""
    working_hours: str = Field("", alias="workingHours")
    weekly_availability: str = Field("", alias="weeklyAvailability")
    why_this_role: str = Field("", alias="whyThisRole")
    age: Optional[Union[int, str]] = Field(None, description="Blank or a whole number; checked with the other fields")
    gender: Optional[str] = None
    education: Optional[str] = None
    current_position: Optional[str] = Field(None, alias="currentPosition")
    reference: Optional[str] = Field(None, description="Reference label picked in the dropdown")


class Applicant(_Document):
    """One candidate for the SRM role
    Collection: "applicants"
    """
    full_name: str = Field(..., alias="fullName")
    email: str
    phone: str = Field(..., description="10 digits, no country code")
    city: str
    working_hours: Optional[str] = Field(None, alias="workingHours")
    weekly_availability: Optional[str] = Field(None, alias="weeklyAvailability")
    why_this_role: Optional[str] = Field(None, alias="whyThisRole")
    age: Optional[int] = None
    gender: Optional[str] = None
    education: Optional[str] = None
    current_position: Optional[str] = Field(None, alias="currentPosition")
    reference: Optional[str] = None
    reference_id: Optional[str] = Field(None, alias="referenceId")
    status: Optional[StatusType] = DEFAULT_STATUS
    sales_completed: int = Field(0, ge=0, alias="salesCompleted")
    notes: Optional[str] = None
    starred: bool = False
    submitted_at: Optional[datetime] = Field(None, alias="submittedAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")


class ApplicantOut(Applicant):
    id: str
    status: str = DEFAULT_STATUS
    call_link: Optional[str] = Field(None, alias="callLink")
    whatsapp_link: Optional[str] = Field(None, alias="whatsappLink")


class FieldUpdate(_Document):
    """Exactly one dashboard-editable field per request."""
    status: Optional[StatusType] = None
    sales_completed: Optional[int] = Field(None, ge=0, alias="salesCompleted")
    notes: Optional[str] = None
    starred: Optional[bool] = None

    @model_validator(mode="after")
    def _exactly_one(self):
        if len(self.model_fields_set) != 1 or getattr(self, next(iter(self.model_fields_set))) is None:
            raise ValueError("Provide exactly one of status, salesCompleted, notes, starred")
        return self

    def as_pair(self):
        name = next(iter(self.model_fields_set))
        field = type(self).model_fields[name]
        return field.alias or name, getattr(self, name)


class Kpis(_Document):
    total: int
    by_status: dict = Field(..., alias="byStatus")
    this_month: int = Field(..., alias="thisMonth")
    hired: int
    total_registrations: int = Field(..., alias="totalRegistrations")
    target_achieved_pct: float = Field(..., alias="targetAchievedPct")


class ApplicantPage(_Document):
    items: List[ApplicantOut]
    count: int
    page: int
    page_size: Optional[int] = Field(None, alias="pageSize")
    kpis: Kpis


class Recruiter(_Document):
    """Agent or reference that applicants are attributed to
    Collection: "agents" / "references"
    """
    name: str
    email: Optional[str] = None
    uid: Optional[str] = None
    role: RoleType = "agent"
    reference_label: str = Field(..., alias="referenceLabel")
    created_at: Optional[datetime] = Field(None, alias="createdAt")


class RecruiterOut(Recruiter):
    id: str


class RecruiterCreate(_Document):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6, description="Identity provider password")
    reference_label: str = Field(..., min_length=1, alias="referenceLabel")
