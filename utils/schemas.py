"""
Pydantic Schemas - Reporting API Records and Flat Projections

Defines the records returned by the reporting API and the flat, single-level
rows written to object storage:
- SecurityTest / FlatSecurityTest
- Recipient / FlatRecipient
- Campaign / FlatCampaign
- Group / FlatGroup
- User / FlatUser

Fields missing from an API payload, or sent as null, fall back to zero values,
and so do null entries of integer and string lists. Only a value of the wrong
type is rejected; values are never range checked. Field names follow the API's
JSON keys; the two keys that are not valid identifiers ("landing-page",
"vulnerable-plugins_at") are mapped through aliases.

Usage:
    from utils.schemas import SecurityTest

    tests = TypeAdapter(list[SecurityTest]).validate_json(body)
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator


class ApiRecord(BaseModel):
    """Base for API payloads; unknown keys are ignored."""

    class Config:
        populate_by_name = True
        extra = "ignore"

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        """Treat explicit nulls like missing keys so field defaults apply."""
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class FlatRecord(BaseModel):
    """Base for flat rows; serialized with ``by_alias=True``."""

    class Config:
        populate_by_name = True
        extra = "forbid"


# ---------------------------------------------------------------------------
# Nested references
# ---------------------------------------------------------------------------


class GroupRef(ApiRecord):
    group_id: int = 0
    name: str = ""


class CategoryRef(ApiRecord):
    category_id: int = 0
    name: str = ""


class TemplateRef(ApiRecord):
    id: int = 0
    name: str = ""


class LandingPageRef(ApiRecord):
    id: int = 0
    name: str = ""


class RecipientUser(ApiRecord):
    """The user a recipient record was sent to."""

    id: int = 0
    active_directory_guid: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    email: str = ""


class PstSummary(ApiRecord):
    """Short form of a security test embedded in a campaign."""

    pst_id: int = 0
    status: str = ""
    start_date: Optional[datetime] = None
    users_count: int = 0
    phish_prone_percentage: float = 0.0


class RiskScoreEntry(ApiRecord):
    group_id: Optional[int] = None
    risk_score: float = 0.0
    date: str = ""


# ---------------------------------------------------------------------------
# API records
# ---------------------------------------------------------------------------


class SecurityTest(ApiRecord):
    """One execution of a phishing simulation (PST)."""

    campaign_id: int = 0
    pst_id: int = 0
    status: str = ""
    name: str = ""
    groups: list[GroupRef] = Field(default_factory=list)
    phish_prone_percentage: float = 0.0
    started_at: Optional[datetime] = None
    duration: int = 0
    categories: list[CategoryRef] = Field(default_factory=list)
    template: TemplateRef = Field(default_factory=TemplateRef)
    landing_page: LandingPageRef = Field(default_factory=LandingPageRef, alias="landing-page")
    scheduled_count: int = 0
    delivered_count: int = 0
    opened_count: int = 0
    clicked_count: int = 0
    replied_count: int = 0
    attachment_open_count: int = 0
    macro_enabled_count: int = 0
    data_entered_count: int = 0
    vulnerable_plugin_count: int = 0
    exploited_count: int = 0
    reported_count: int = 0
    bounced_count: int = 0


class Recipient(ApiRecord):
    """One targeted person's interaction record within a security test."""

    recipient_id: int = 0
    pst_id: int = 0
    user: RecipientUser = Field(default_factory=RecipientUser)
    template: TemplateRef = Field(default_factory=TemplateRef)
    scheduled_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    opened_at: Optional[datetime] = None
    clicked_at: Optional[datetime] = None
    replied_at: Optional[datetime] = None
    attachment_opened_at: Optional[datetime] = None
    macro_enabled_at: Optional[datetime] = None
    data_entered_at: Optional[datetime] = None
    vulnerable_plugins_at: Optional[datetime] = Field(default=None, alias="vulnerable-plugins_at")
    exploited_at: Optional[datetime] = None
    reported_at: Optional[datetime] = None
    bounced_at: Optional[datetime] = None
    ip: str = ""
    ip_location: str = ""
    browser: str = ""
    browser_version: str = ""
    os: str = ""


class Campaign(ApiRecord):
    campaign_id: int = 0
    name: str = ""
    groups: list[GroupRef] = Field(default_factory=list)
    last_phish_prone_percentage: float = 0.0
    last_run: Optional[datetime] = None
    status: str = ""
    hidden: bool = False
    send_duration: str = ""
    track_duration: str = ""
    frequency: str = ""
    difficulty_filter: list[int] = Field(default_factory=list)
    create_date: Optional[datetime] = None
    psts_count: int = 0
    psts: list[PstSummary] = Field(default_factory=list)

    @field_validator("difficulty_filter", mode="before")
    @classmethod
    def null_levels_to_zero(cls, v: Any) -> Any:
        """Null entries decode as level 0; levels are kept as sent, in or out of the 1-5 range."""
        if isinstance(v, list):
            return [0 if level is None else level for level in v]
        return v


class Group(ApiRecord):
    id: int = 0
    name: str = ""
    group_type: str = ""
    adi_guid: str = ""
    member_count: int = 0
    current_risk_score: float = 0.0
    risk_score_history: list[RiskScoreEntry] = Field(default_factory=list)
    status: str = ""


class User(ApiRecord):
    """Directory user as exposed by the reporting API."""

    id: int = 0
    employee_number: str = ""
    first_name: str = ""
    last_name: str = ""
    job_title: str = ""
    email: str = ""
    phish_prone_percentage: float = 0.0
    phone_number: str = ""
    extension: str = ""
    mobile_phone_number: str = ""
    location: str = ""
    division: str = ""
    manager_name: str = ""
    manager_email: str = ""
    provisioning_managed: bool = False
    provisioning_guid: Optional[str] = None
    groups: list[int] = Field(default_factory=list)
    current_risk_score: float = 0.0
    risk_score_history: list[RiskScoreEntry] = Field(default_factory=list)
    aliases: list[str] = Field(default_factory=list)
    joined_on: Optional[datetime] = None
    last_sign_in: Optional[datetime] = None
    status: str = ""
    organization: str = ""
    department: str = ""
    language: str = ""
    comment: str = ""
    employee_start_date: Optional[datetime] = None
    archived_at: Optional[datetime] = None
    custom_field_1: Optional[str] = None
    custom_field_2: Optional[str] = None
    custom_field_3: Optional[str] = None
    custom_field_4: Optional[str] = None
    custom_date_1: Optional[str] = None
    custom_date_2: Optional[str] = None

    @field_validator("groups", "aliases", mode="before")
    @classmethod
    def null_entries_to_zero(cls, v: Any, info: ValidationInfo) -> Any:
        if isinstance(v, list):
            zero = 0 if info.field_name == "groups" else ""
            return [zero if item is None else item for item in v]
        return v


# ---------------------------------------------------------------------------
# Flat projections
# ---------------------------------------------------------------------------


class FlatSecurityTest(FlatRecord):
    campaign_id: int
    pst_id: int
    status: str
    name: str
    all_groups: str
    phish_prone_percentage: float
    started_at: Optional[datetime]
    duration: int
    all_categories: str
    template_id: int
    template_name: str
    landing_page_id: int
    landing_page_name: str
    scheduled_count: int
    delivered_count: int
    opened_count: int
    clicked_count: int
    replied_count: int
    attachment_open_count: int
    macro_enabled_count: int
    data_entered_count: int
    vulnerable_plugin_count: int
    exploited_count: int
    reported_count: int
    bounced_count: int


class FlatRecipient(FlatRecord):
    recipient_id: int
    pst_id: int
    user_id: int
    user_active_directory_guid: Optional[str]
    user_first_name: str
    user_last_name: str
    user_email: str
    template_id: int
    template_name: str
    scheduled_at: Optional[datetime]
    delivered_at: Optional[datetime]
    opened_at: Optional[datetime]
    clicked_at: Optional[datetime]
    replied_at: Optional[datetime]
    attachment_opened_at: Optional[datetime]
    macro_enabled_at: Optional[datetime]
    data_entered_at: Optional[datetime]
    vulnerable_plugins_at: Optional[datetime] = Field(alias="vulnerable-plugins_at")
    exploited_at: Optional[datetime]
    reported_at: Optional[datetime]
    bounced_at: Optional[datetime]
    ip: str
    ip_location: str
    browser: str
    browser_version: str
    os: str


class FlatCampaign(FlatRecord):
    campaign_id: int
    name: str
    all_groups: str
    last_phish_prone_percentage: float
    last_run: Optional[datetime]
    status: str
    hidden: bool
    send_duration: str
    track_duration: str
    frequency: str
    all_difficulty_filter: str
    create_date: Optional[datetime]
    psts_count: int
    all_psts: str


class FlatGroup(FlatRecord):
    id: int
    name: str
    group_type: str
    adi_guid: str
    member_count: int
    current_risk_score: float
    status: str


class FlatUser(FlatRecord):
    id: int
    employee_number: str
    first_name: str
    last_name: str
    job_title: str
    email: str
    phish_prone_percentage: float
    phone_number: str
    extension: str
    mobile_phone_number: str
    location: str
    division: str
    manager_name: str
    manager_email: str
    provisioning_managed: bool
    provisioning_guid: Optional[str]
    all_groups: str
    current_risk_score: float
    all_aliases: str
    joined_on: Optional[datetime]
    last_sign_in: Optional[datetime]
    status: str
    organization: str
    department: str
    language: str
    comment: str
    employee_start_date: Optional[datetime]
    archived_at: Optional[datetime]
    custom_field_1: Optional[str]
    custom_field_2: Optional[str]
    custom_field_3: Optional[str]
    custom_field_4: Optional[str]
    custom_date_1: Optional[str]
    custom_date_2: Optional[str]
