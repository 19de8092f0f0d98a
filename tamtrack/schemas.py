from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Literal, Optional, Tuple

import pydantic
from pydantic import (
    AliasChoices,
    BaseModel,
    EmailStr,
    Field,
    StringConstraints,
    field_validator,
    model_validator,
)
from typing_extensions import Annotated

from . import errors

NonEmptyShortStr = Annotated[str, StringConstraints(min_length=1, max_length=100)]
NonEmptyNameStr = Annotated[str, StringConstraints(min_length=1, max_length=200)]
NonEmptyLongStr = Annotated[str, StringConstraints(min_length=1, max_length=1000)]
CommentStr = Annotated[str, StringConstraints(min_length=1, max_length=2000)]
ItemNumberStr = Annotated[str, StringConstraints(min_length=1, max_length=50)]
PasswordStr = Annotated[str, StringConstraints(min_length=8, max_length=128)]
EmailType = Annotated[EmailStr, StringConstraints(max_length=254)]
Money = Annotated[Decimal, Field(ge=0, max_digits=10, decimal_places=2)]

BuildStatus = Literal["planning", "building", "built", "maintenance"]
BuildType = Literal["kit", "custom"]
InstallationStatus = Literal["planned", "installed", "removed"]
SharePreference = Literal["public", "authenticated", "private"]
FeedbackCategory = Literal["feature", "bug", "improvement", "other"]
FeedbackStatus = Literal["open", "planned", "in_progress", "completed", "declined"]
ElectronicKind = Literal["motor", "esc", "servo", "receiver"]
FieldKey = Literal["scale", "drive_type", "body_material", "battery", "hop_up_category"]

# wire values that arrive as strings from forms
_NUMERIC_FIELDS = (
    "release_year",
    "total_cost",
    "cost",
    "quantity",
    "entry_number",
    "sort_order",
    "kv",
    "turns",
    "max_amps",
    "channels",
)
_LIST_FIELDS = ("tags", "compatibility", "photo_ids")


def validate(schema_cls, data):
    """Validate ``data`` against ``schema_cls``, reporting every failing field."""
    if isinstance(data, schema_cls):
        return data
    try:
        return schema_cls.model_validate(data)
    except pydantic.ValidationError as exc:
        raise errors.ValidationError(
            errors=[
                {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
                for err in exc.errors()
            ]
        ) from None


class WireModel(BaseModel):
    """Base for inbound payloads: blank numbers become None, null lists empty."""

    @field_validator(*_NUMERIC_FIELDS, mode="before", check_fields=False)
    @classmethod
    def _blank_number(cls, value):
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
        return value

    @field_validator(*_LIST_FIELDS, mode="before", check_fields=False)
    @classmethod
    def _null_list(cls, value):
        return [] if value is None else value


class PartialUpdate(WireModel):
    """Every field optional; fields named in ``not_nullable`` reject explicit null."""

    not_nullable: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def _reject_nulls(self):
        nulled = [
            name
            for name in self.not_nullable
            if name in self.model_fields_set and getattr(self, name) is None
        ]
        if nulled:
            raise ValueError(f"fields may not be null: {', '.join(nulled)}")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


# --- Users ---


class UserBase(BaseModel):
    email: EmailType
    display_name: NonEmptyShortStr


class UserCreate(UserBase):
    password: PasswordStr


class UserOut(UserBase):
    id: int
    auth_provider: str
    is_admin: bool
    model_limit: int
    manually_granted_models: int
    share_preference: SharePreference
    created_at: datetime

    model_config = {"from_attributes": True}


class UserUpdate(BaseModel):
    display_name: NonEmptyShortStr

    model_config = {"from_attributes": True}


class SharePreferenceUpdate(BaseModel):
    share_preference: SharePreference


class Token(BaseModel):
    access_token: str
    token_type: str


class UserLogin(BaseModel):
    email: EmailType
    password: str


class OwnerPublic(BaseModel):
    id: int
    display_name: str

    model_config = {"from_attributes": True}


# --- Photos ---


class PhotoCreate(WireModel):
    filename: Annotated[str, StringConstraints(min_length=1, max_length=255)]
    original_name: Annotated[str, StringConstraints(min_length=1, max_length=255)]
    url: Annotated[str, StringConstraints(min_length=1, max_length=500)]
    caption: Optional[str] = None
    is_box_art: bool = False
    sort_order: int = 0
    photo_metadata: Optional[Dict[str, Any]] = Field(
        None, validation_alias=AliasChoices("photo_metadata", "metadata")
    )


class PhotoUpdate(PartialUpdate):
    not_nullable: ClassVar[Tuple[str, ...]] = ("is_box_art", "sort_order")

    caption: Optional[str] = None
    is_box_art: Optional[bool] = None
    sort_order: Optional[int] = None
    photo_metadata: Optional[Dict[str, Any]] = Field(
        None, validation_alias=AliasChoices("photo_metadata", "metadata")
    )


class PhotoOut(BaseModel):
    id: int
    model_id: int
    filename: str
    original_name: str
    url: str
    caption: Optional[str] = None
    is_box_art: bool
    sort_order: int
    metadata: Optional[Dict[str, Any]] = Field(
        None, validation_alias=AliasChoices("photo_metadata", "metadata")
    )
    created_at: datetime

    model_config = {"from_attributes": True}


# --- Build log ---


class BuildLogEntryCreate(WireModel):
    entry_number: Optional[int] = None
    title: NonEmptyNameStr
    content: Optional[str] = None
    voice_note_url: Optional[str] = None
    transcription: Optional[str] = None
    entry_date: Optional[datetime] = None
    photo_ids: List[int] = Field(default_factory=list)


class BuildLogEntryUpdate(PartialUpdate):
    not_nullable: ClassVar[Tuple[str, ...]] = ("title", "entry_date")

    entry_number: Optional[int] = None
    title: Optional[NonEmptyNameStr] = None
    content: Optional[str] = None
    voice_note_url: Optional[str] = None
    transcription: Optional[str] = None
    entry_date: Optional[datetime] = None
    photo_ids: Optional[List[int]] = None


class EntryPhotoLinks(BaseModel):
    photo_ids: List[int] = Field(..., min_length=1)


class BuildLogEntryOut(BaseModel):
    id: int
    model_id: int
    entry_number: Optional[int] = None
    title: str
    content: Optional[str] = None
    voice_note_url: Optional[str] = None
    transcription: Optional[str] = None
    entry_date: datetime
    created_at: datetime
    photos: List[PhotoOut] = []

    model_config = {"from_attributes": True}


class ModelRef(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class BuildLogEntryWithModel(BuildLogEntryOut):
    model: ModelRef


# --- Hop-up parts ---


class HopUpPartCreate(WireModel):
    name: NonEmptyNameStr
    item_number: Optional[str] = None
    category: Annotated[str, StringConstraints(min_length=1, max_length=50)]
    manufacturer: Optional[str] = None
    supplier: Optional[str] = None
    cost: Optional[Money] = None
    quantity: int = Field(1, ge=1)
    installation_status: InstallationStatus = "planned"
    installation_date: Optional[datetime] = None
    notes: Optional[str] = None
    photo_id: Optional[int] = None
    compatibility: List[str] = Field(default_factory=list)


class HopUpPartUpdate(PartialUpdate):
    not_nullable: ClassVar[Tuple[str, ...]] = (
        "name",
        "category",
        "quantity",
        "installation_status",
    )

    name: Optional[NonEmptyNameStr] = None
    item_number: Optional[str] = None
    category: Optional[Annotated[str, StringConstraints(min_length=1, max_length=50)]] = None
    manufacturer: Optional[str] = None
    supplier: Optional[str] = None
    cost: Optional[Money] = None
    quantity: Optional[int] = Field(None, ge=1)
    installation_status: Optional[InstallationStatus] = None
    installation_date: Optional[datetime] = None
    notes: Optional[str] = None
    photo_id: Optional[int] = None
    compatibility: Optional[List[str]] = None


class PublicHopUpPartOut(BaseModel):
    """Hop-up part as shown to other users; carries no cost."""

    id: int
    model_id: int
    name: str
    item_number: Optional[str] = None
    category: str
    manufacturer: Optional[str] = None
    supplier: Optional[str] = None
    quantity: int
    installation_status: str
    installation_date: Optional[datetime] = None
    notes: Optional[str] = None
    photo: Optional[PhotoOut] = None
    compatibility: List[str] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class HopUpPartOut(PublicHopUpPartOut):
    cost: Optional[Decimal] = None
    photo_id: Optional[int] = None


class HopUpPartWithModel(HopUpPartOut):
    model: ModelRef


# --- Electronics ---


class ElectronicSpecs(WireModel):
    model_config = {"extra": "forbid"}


class MotorSpecs(ElectronicSpecs):
    motor_type: Literal["brushed", "brushless"] = "brushed"
    is_sensored: bool = False
    kv: Optional[int] = Field(None, ge=0)
    turns: Optional[Decimal] = Field(None, ge=0)
    diameter: Optional[str] = None
    can_size: Optional[str] = None


class EscSpecs(ElectronicSpecs):
    esc_type: Literal["brushed", "brushless", "sensored"] = "brushed"
    max_amps: Optional[int] = Field(None, ge=0)
    max_voltage: Optional[str] = None
    bec: Optional[str] = None
    programmable: bool = False


class ServoSpecs(ElectronicSpecs):
    servo_type: Literal["standard", "low-profile", "mini", "micro"] = "standard"
    torque: Optional[str] = None
    speed: Optional[str] = None
    voltage: Optional[str] = None
    gear_type: Optional[Literal["plastic", "metal", "titanium"]] = None
    is_digital: bool = False
    is_waterproof: bool = False


class ReceiverSpecs(ElectronicSpecs):
    protocol: Optional[str] = None
    channels: Optional[int] = Field(None, ge=1, le=32)
    frequency: Optional[str] = None
    has_gyro: bool = False
    has_telemetry: bool = False


SPECS_BY_KIND = {
    "motor": MotorSpecs,
    "esc": EscSpecs,
    "servo": ServoSpecs,
    "receiver": ReceiverSpecs,
}


def validate_specs(kind: str, specs) -> Dict[str, Any]:
    """Check ``specs`` against the fields allowed for ``kind``."""
    try:
        checked = validate(SPECS_BY_KIND[kind], specs or {})
    except errors.ValidationError as exc:
        for err in exc.errors:
            err["loc"] = ["specs"] + err["loc"]
        raise
    return checked.model_dump(mode="json")


class ElectronicCreate(WireModel):
    kind: ElectronicKind
    name: NonEmptyNameStr
    manufacturer: Optional[str] = None
    item_number: Optional[str] = None
    cost: Optional[Money] = None
    notes: Optional[str] = None
    specs: Dict[str, Any] = Field(default_factory=dict)


class ElectronicUpdate(PartialUpdate):
    not_nullable: ClassVar[Tuple[str, ...]] = ("name", "specs")

    name: Optional[NonEmptyNameStr] = None
    manufacturer: Optional[str] = None
    item_number: Optional[str] = None
    cost: Optional[Money] = None
    notes: Optional[str] = None
    specs: Optional[Dict[str, Any]] = None


class PublicElectronicOut(BaseModel):
    """An electronics item as shown on a shared model; carries no cost."""

    id: int
    kind: str
    name: str
    manufacturer: Optional[str] = None
    item_number: Optional[str] = None
    specs: Dict[str, Any] = {}

    model_config = {"from_attributes": True}


class ElectronicOut(PublicElectronicOut):
    cost: Optional[Decimal] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ModelElectronicsUpdate(PartialUpdate):
    motor_id: Optional[int] = None
    esc_id: Optional[int] = None
    servo_id: Optional[int] = None
    receiver_id: Optional[int] = None
    notes: Optional[str] = None


class PublicModelElectronicsOut(BaseModel):
    model_id: int
    motor: Optional[PublicElectronicOut] = None
    esc: Optional[PublicElectronicOut] = None
    servo: Optional[PublicElectronicOut] = None
    receiver: Optional[PublicElectronicOut] = None

    model_config = {"from_attributes": True}


class ModelElectronicsOut(PublicModelElectronicsOut):
    id: int
    motor: Optional[ElectronicOut] = None
    esc: Optional[ElectronicOut] = None
    servo: Optional[ElectronicOut] = None
    receiver: Optional[ElectronicOut] = None
    notes: Optional[str] = None
    updated_at: datetime


# --- Models ---


class ModelIn(WireModel):
    name: NonEmptyNameStr
    item_number: ItemNumberStr
    chassis: Optional[str] = None
    release_year: Optional[int] = Field(None, ge=1900, le=2100)
    build_status: BuildStatus = "planning"
    build_type: BuildType = "kit"
    body_name: Optional[str] = None
    body_item_number: Optional[str] = None
    total_cost: Money = Decimal("0")
    scale: Optional[str] = None
    drive_type: Optional[str] = None
    body_material: Optional[str] = None
    motor: Optional[str] = None
    battery: Optional[str] = None
    manual_url: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("total_cost", mode="before")
    @classmethod
    def _default_cost(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return Decimal("0")
        return value


class ModelCreate(ModelIn):
    owner_id: int


class ModelUpdate(PartialUpdate):
    not_nullable: ClassVar[Tuple[str, ...]] = (
        "name",
        "item_number",
        "build_status",
        "build_type",
        "total_cost",
        "is_shared",
    )

    name: Optional[NonEmptyNameStr] = None
    item_number: Optional[ItemNumberStr] = None
    chassis: Optional[str] = None
    release_year: Optional[int] = Field(None, ge=1900, le=2100)
    build_status: Optional[BuildStatus] = None
    build_type: Optional[BuildType] = None
    body_name: Optional[str] = None
    body_item_number: Optional[str] = None
    total_cost: Optional[Money] = None
    scale: Optional[str] = None
    drive_type: Optional[str] = None
    body_material: Optional[str] = None
    motor: Optional[str] = None
    battery: Optional[str] = None
    manual_url: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    is_shared: Optional[bool] = None


class ModelOut(BaseModel):
    id: int
    owner_id: int
    name: str
    item_number: str
    chassis: Optional[str] = None
    release_year: Optional[int] = None
    build_status: str
    build_type: str
    body_name: Optional[str] = None
    body_item_number: Optional[str] = None
    total_cost: Decimal
    scale: Optional[str] = None
    drive_type: Optional[str] = None
    body_material: Optional[str] = None
    motor: Optional[str] = None
    battery: Optional[str] = None
    manual_url: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str] = []
    is_shared: bool
    public_slug: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ModelListItem(ModelOut):
    photos: List[PhotoOut] = []
    recent_build_log_entries: List[BuildLogEntryOut] = []
    hop_up_parts: List[HopUpPartOut] = []


class ModelDetail(ModelOut):
    photos: List[PhotoOut] = []
    build_log_entries: List[BuildLogEntryOut] = []
    hop_up_parts: List[HopUpPartOut] = []
    total_investment: Decimal
    installed_parts_value: Decimal


class CollectionStats(BaseModel):
    total_models: int
    active_builds: int
    total_investment: Decimal
    total_photos: int


# --- Community ---


class SharedModelOut(BaseModel):
    id: int
    name: str
    item_number: str
    chassis: Optional[str] = None
    release_year: Optional[int] = None
    build_status: str
    build_type: str
    body_name: Optional[str] = None
    scale: Optional[str] = None
    drive_type: Optional[str] = None
    body_material: Optional[str] = None
    motor: Optional[str] = None
    battery: Optional[str] = None
    tags: List[str] = []
    public_slug: str
    owner: OwnerPublic
    photos: List[PhotoOut] = []
    hop_up_count: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CommentCreate(BaseModel):
    content: CommentStr


class CommentOut(BaseModel):
    id: int
    model_id: int
    author: OwnerPublic
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}


# --- Feedback ---


class FeedbackPostCreate(BaseModel):
    title: NonEmptyShortStr
    description: NonEmptyLongStr
    category: FeedbackCategory = "feature"


class FeedbackPostOut(BaseModel):
    id: int
    author_id: int
    title: str
    description: str
    category: str
    status: str
    vote_count: int
    has_voted: bool = False
    created_at: datetime

    model_config = {"from_attributes": True}


class FeedbackStatusUpdate(BaseModel):
    status: FeedbackStatus


class VoteOut(BaseModel):
    message: str
    post_id: int
    user_id: int


# --- Admin ---


class GrantModels(BaseModel):
    model_count: int = Field(..., gt=0, le=1000)


class UnshareRequest(BaseModel):
    reason: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)
    ]


class AdminUserOut(UserOut):
    model_count: int
    photo_count: int


class DashboardStats(BaseModel):
    total_users: int
    total_models: int
    total_photos: int
    shared_models: int
    open_feedback: int


class AdminSharedModelOut(BaseModel):
    model: ModelOut
    owner_id: int
    owner_email: str
    share_preference: str
    photo_count: int


class FieldOptionCreate(BaseModel):
    field_key: FieldKey
    value: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)
    ]
    sort_order: int = 0
    is_active: bool = True


class FieldOptionUpdate(PartialUpdate):
    not_nullable: ClassVar[Tuple[str, ...]] = ("sort_order", "is_active")

    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class FieldOptionReplace(BaseModel):
    new_value: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)
    ]


class FieldOptionOut(BaseModel):
    id: int
    field_key: str
    value: str
    sort_order: int
    is_active: bool

    model_config = {"from_attributes": True}


class FieldOptionReplaced(BaseModel):
    option: FieldOptionOut
    updated_rows: int


class FieldOptionUsage(BaseModel):
    option_id: int
    usage_count: int


class AuditLogOut(BaseModel):
    id: int
    action: str
    details: Dict[str, Any] = {}
    admin_email: Optional[str] = None
    target_user_email: Optional[str] = None
    created_at: datetime


class UserActivityOut(BaseModel):
    id: int
    activity_type: str
    details: Dict[str, Any] = {}
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    user_email: Optional[str] = None
    created_at: datetime
