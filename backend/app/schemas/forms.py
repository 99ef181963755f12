import uuid
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

FieldType = Literal[
    "short_text",
    "long_text",
    "email",
    "number",
    "date",
    "dropdown",
    "checkbox",
    "radio",
    "file",
    "rating",
    "matrix",
    "signature",
    "image_choice",
]
FieldWidth = Literal["full", "half"]


# ---------------------------------------------------------------------------
# Field schemas
# ---------------------------------------------------------------------------


class FieldValidation(BaseModel):
    required: bool = False
    min_length: int | None = None
    max_length: int | None = None
    min: float | None = None
    max: float | None = None
    pattern: str | None = None
    pattern_error_message: str | None = None
    email: bool | None = None
    phone: bool | None = None
    custom_message: str | None = None


class FieldLogic(BaseModel):
    """Show the field only when another field's answer matches."""

    show_when_field_id: str
    operator: Literal["equals", "not_equals", "contains"] = "equals"
    value: str | None = None


class FieldDefinition(BaseModel):
    """Single input on a form.

    ``id`` is generated server-side when omitted. ``created_at`` is stamped
    when the field first appears on the form and is what analytics use to
    decide which responses could have answered it.
    """

    id: str | None = Field(None, min_length=1, max_length=64)
    type: FieldType
    label: str = Field(..., min_length=1, max_length=1000)
    placeholder: str | None = None
    required: bool = False
    options: list[Any] | None = Field(
        None,
        description="Choices for dropdown/radio/checkbox/rating; {id,label,url} objects for image_choice",
    )
    validation: FieldValidation | None = None
    width: FieldWidth = "full"
    order: int = 0
    logic: FieldLogic | None = None
    matrix_rows: list[str] | None = None
    matrix_columns: list[str] | None = None
    created_at: datetime | None = None


# ---------------------------------------------------------------------------
# Form kinds (tagged variant)
# ---------------------------------------------------------------------------


class CustomDetail(BaseModel):
    label: str | None = None
    type: str = "short_text"
    value: str = ""


class _KindBase(BaseModel):
    subtitle: str | None = None
    custom_details: list[CustomDetail] = Field(default_factory=list)


class GeneralKind(_KindBase):
    kind: Literal["general"] = "general"


class EventKind(_KindBase):
    kind: Literal["event"]
    date: str | None = None
    time: str | None = None
    location: str | None = None
    organizer_name: str | None = None
    organizer_email: str | None = None
    organizer_phone: str | None = None
    status: str | None = None
    capacity: int | None = Field(None, ge=0)
    agenda: str | None = None


class JobKind(_KindBase):
    kind: Literal["job"]
    company_name: str | None = None
    department: str | None = None
    location: str | None = None
    salary: str | None = None
    employment_type: str | None = None
    skills: str | None = None
    deadline: str | None = None


class TravelKind(_KindBase):
    kind: Literal["travel"]
    destination: str | None = None
    duration: str | None = None
    price: str | None = None
    itinerary: str | None = None


class AppointmentKind(_KindBase):
    kind: Literal["appointment"]
    title: str | None = None
    type: str | None = None
    date_time: str | None = None
    location: str | None = None
    description: str | None = None


class FeedbackKind(_KindBase):
    kind: Literal["feedback"]
    company_name: str | None = None
    product_service: str | None = None
    customer_type: str | None = None
    category: str | None = None


class AdmissionKind(_KindBase):
    kind: Literal["admission"]
    college_name: str | None = None
    program: str | None = None
    application_deadline: str | None = None
    requirements: str | None = None
    tuition_fees: str | None = None


class SupportKind(_KindBase):
    kind: Literal["support"]
    department: str | None = None
    urgency_level: str | None = None
    subject_category: str | None = None
    contact_phone: str | None = None


class SurveyKind(_KindBase):
    kind: Literal["survey"]
    survey_type: str | None = None
    target_audience: str | None = None
    estimated_time: str | None = None
    category: str | None = None


class ProductKind(_KindBase):
    kind: Literal["product"]
    name: str | None = None
    category: str | None = None
    price: str | None = None
    stock_quantity: str | None = None


class CourseKind(_KindBase):
    kind: Literal["course"]
    name: str | None = None
    level: str | None = None
    duration: str | None = None
    fee: str | None = None


FormKind = Annotated[
    Union[
        GeneralKind,
        EventKind,
        JobKind,
        TravelKind,
        AppointmentKind,
        FeedbackKind,
        AdmissionKind,
        SupportKind,
        SurveyKind,
        ProductKind,
        CourseKind,
    ],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class ThemeSettings(BaseModel):
    primary_color: str = "#6366f1"
    accent_color: str = "#22c55e"
    background: str = "#0f172a"


class FormSettings(BaseModel):
    is_public: bool = True
    notification_email: str | None = None
    notify_on_submission: bool = False
    theme: ThemeSettings = Field(default_factory=ThemeSettings)
    allow_multiple_submissions: bool = True
    collect_emails: Literal["none", "responder_input"] = "none"
    send_response_copy: Literal["off", "requested", "always"] = "off"
    custom_message: str | None = None


# ---------------------------------------------------------------------------
# Form CRUD schemas
# ---------------------------------------------------------------------------


class FormCreate(BaseModel):
    title: str = Field("Untitled Form", min_length=1, max_length=255)
    description: str | None = None
    details: FormKind = Field(default_factory=GeneralKind)
    fields: list[FieldDefinition] = Field(default_factory=list)
    settings: FormSettings = Field(default_factory=FormSettings)
    logo: str | None = Field(None, max_length=1000)
    header_image: str | None = Field(None, max_length=1000)
    source_template_id: uuid.UUID | None = None


class FormUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    details: FormKind | None = None
    fields: list[FieldDefinition] | None = None
    settings: FormSettings | None = None
    logo: str | None = Field(None, max_length=1000)
    header_image: str | None = Field(None, max_length=1000)


class PublicFormResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: str | None
    kind: str
    kind_details: dict[str, Any]
    fields: list[dict[str, Any]]
    settings: dict[str, Any]
    logo: str | None
    header_image: str | None
    created_at: datetime
    updated_at: datetime


class FormResponse(PublicFormResponse):
    owner_id: uuid.UUID
    source_template_id: uuid.UUID | None


class FormDetailResponse(FormResponse):
    response_count: int = 0
    role: str = "owner"
    permissions: dict[str, bool] = Field(default_factory=dict)


class FormListResponse(BaseModel):
    items: list[FormResponse]
    total: int
    page: int
    page_size: int


class SharedFormSummary(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None


class SharedFormItem(BaseModel):
    form: SharedFormSummary
    shared_by: str
    role: str
    permissions: dict[str, bool]
    shared_at: datetime


class SharedFormListResponse(BaseModel):
    items: list[SharedFormItem]


class ViewRecorded(BaseModel):
    recorded: bool = True
