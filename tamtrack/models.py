from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .config import settings
from .database import Base

BUILD_STATUSES = ("planning", "building", "built", "maintenance")
BUILD_TYPES = ("kit", "custom")
INSTALLATION_STATUSES = ("planned", "installed", "removed")
SHARE_PREFERENCES = ("public", "authenticated", "private")
AUTH_PROVIDERS = ("password", "google")
FEEDBACK_CATEGORIES = ("feature", "bug", "improvement", "other")
FEEDBACK_STATUSES = ("open", "planned", "in_progress", "completed", "declined")
ELECTRONIC_KINDS = ("motor", "esc", "servo", "receiver")

ZERO = Decimal("0.00")


def utcnow():
    return datetime.utcnow()


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(254), unique=True, index=True, nullable=False)
    display_name = Column(String(100), nullable=False)
    hashed_password = Column(String, nullable=True)  # null for oauth accounts
    auth_provider = Column(String(20), nullable=False, default="password")
    is_admin = Column(Boolean, nullable=False, default=False)
    model_limit = Column(
        Integer, nullable=False, default=lambda: settings.FREE_MODEL_LIMIT
    )
    manually_granted_models = Column(Integer, nullable=False, default=0)
    share_preference = Column(String(20), nullable=False, default="private")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    models = relationship(
        "Model", back_populates="owner", cascade="all, delete-orphan"
    )
    comments = relationship(
        "ModelComment", back_populates="author", cascade="all, delete-orphan"
    )
    feedback_posts = relationship(
        "FeedbackPost", back_populates="author", cascade="all, delete-orphan"
    )
    votes = relationship(
        "FeedbackVote", back_populates="user", cascade="all, delete-orphan"
    )
    electronics = relationship(
        "Electronic", back_populates="owner", cascade="all, delete-orphan"
    )
    activities = relationship(
        "UserActivity", back_populates="user", cascade="all, delete-orphan"
    )


class Model(Base):
    """One RC kit or custom build: the top-level owned aggregate."""

    __tablename__ = "models"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    item_number = Column(String(50), nullable=False)
    chassis = Column(String(100))
    release_year = Column(Integer)
    build_status = Column(String(20), nullable=False, default="planning")
    build_type = Column(String(20), nullable=False, default="kit")
    body_name = Column(String(200))
    body_item_number = Column(String(50))
    total_cost = Column(Numeric(10, 2), nullable=False, default=ZERO)

    scale = Column(String(20))
    drive_type = Column(String(20))
    body_material = Column(String(50))
    motor = Column(String(100))
    battery = Column(String(100))

    manual_url = Column(String(500))
    notes = Column(Text)
    tags = Column(JSON, nullable=False, default=list)

    is_shared = Column(Boolean, nullable=False, default=False)
    public_slug = Column(String(80), unique=True, index=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="models")
    photos = relationship(
        "Photo",
        back_populates="model",
        cascade="all, delete-orphan",
        order_by=lambda: [Photo.sort_order, Photo.id],
    )
    build_log_entries = relationship(
        "BuildLogEntry",
        back_populates="model",
        cascade="all, delete-orphan",
        order_by=lambda: [BuildLogEntry.entry_date.desc(), BuildLogEntry.id.desc()],
    )
    hop_up_parts = relationship(
        "HopUpPart",
        back_populates="model",
        cascade="all, delete-orphan",
        order_by=lambda: [HopUpPart.created_at.desc(), HopUpPart.id.desc()],
    )
    comments = relationship(
        "ModelComment", back_populates="model", cascade="all, delete-orphan"
    )
    electronics = relationship(
        "ModelElectronics",
        back_populates="model",
        uselist=False,
        cascade="all, delete-orphan",
    )

    # filled by list queries with the newest few entries only
    recent_build_log_entries = ()

    @property
    def total_investment(self) -> Decimal:
        """Own cost plus the cost of every hop-up part, whatever its status."""
        total = self.total_cost or ZERO
        for part in self.hop_up_parts:
            total += part.cost or ZERO
        return total

    @property
    def installed_parts_value(self) -> Decimal:
        total = ZERO
        for part in self.hop_up_parts:
            if part.installation_status == "installed":
                total += (part.cost or ZERO) * (part.quantity or 0)
        return total

    @property
    def hop_up_count(self) -> int:
        return len(self.hop_up_parts)

    @property
    def box_art(self):
        for photo in self.photos:
            if photo.is_box_art:
                return photo
        return None


build_log_photos = Table(
    "build_log_photos",
    Base.metadata,
    Column(
        "build_log_entry_id",
        Integer,
        ForeignKey("build_log_entries.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "photo_id",
        Integer,
        ForeignKey("photos.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Photo(Base):
    __tablename__ = "photos"

    id = Column(Integer, primary_key=True, index=True)
    model_id = Column(
        Integer, ForeignKey("models.id", ondelete="CASCADE"), nullable=False, index=True
    )
    filename = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    url = Column(String(500), nullable=False)
    caption = Column(Text)
    is_box_art = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)
    # "metadata" is reserved on declarative classes
    photo_metadata = Column("metadata", JSON)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    model = relationship("Model", back_populates="photos")
    build_log_entries = relationship(
        "BuildLogEntry", secondary=build_log_photos, back_populates="photos"
    )
    hop_up_parts = relationship(
        "HopUpPart", back_populates="photo", passive_deletes=True
    )


class BuildLogEntry(Base):
    __tablename__ = "build_log_entries"

    id = Column(Integer, primary_key=True, index=True)
    model_id = Column(
        Integer, ForeignKey("models.id", ondelete="CASCADE"), nullable=False, index=True
    )
    entry_number = Column(Integer)
    title = Column(String(200), nullable=False)
    content = Column(Text)
    voice_note_url = Column(String(500))
    transcription = Column(Text)
    entry_date = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    model = relationship("Model", back_populates="build_log_entries")
    photos = relationship(
        "Photo",
        secondary=build_log_photos,
        back_populates="build_log_entries",
        order_by="Photo.id",
    )


class HopUpPart(Base):
    __tablename__ = "hop_up_parts"

    id = Column(Integer, primary_key=True, index=True)
    model_id = Column(
        Integer, ForeignKey("models.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    item_number = Column(String(50))
    category = Column(String(50), nullable=False)
    manufacturer = Column(String(100))
    supplier = Column(String(100))
    cost = Column(Numeric(10, 2))
    quantity = Column(Integer, nullable=False, default=1)
    installation_status = Column(String(20), nullable=False, default="planned")
    installation_date = Column(DateTime)
    notes = Column(Text)
    photo_id = Column(Integer, ForeignKey("photos.id", ondelete="SET NULL"))
    compatibility = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    model = relationship("Model", back_populates="hop_up_parts")
    photo = relationship("Photo", back_populates="hop_up_parts")


class Electronic(Base):
    """A motor, ESC, servo or receiver in a user's parts bin.

    Kind-specific fields (kv, torque, channels...) live in ``specs``.
    """

    __tablename__ = "electronics"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    kind = Column(String(20), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    manufacturer = Column(String(100))
    item_number = Column(String(50))
    cost = Column(Numeric(10, 2))
    notes = Column(Text)
    specs = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="electronics")


class ModelElectronics(Base):
    """Which electronics from the owner's bin are fitted to one model."""

    __tablename__ = "model_electronics"

    id = Column(Integer, primary_key=True, index=True)
    model_id = Column(
        Integer,
        ForeignKey("models.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    motor_id = Column(Integer, ForeignKey("electronics.id", ondelete="SET NULL"))
    esc_id = Column(Integer, ForeignKey("electronics.id", ondelete="SET NULL"))
    servo_id = Column(Integer, ForeignKey("electronics.id", ondelete="SET NULL"))
    receiver_id = Column(Integer, ForeignKey("electronics.id", ondelete="SET NULL"))
    notes = Column(Text)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    model = relationship("Model", back_populates="electronics")
    motor = relationship("Electronic", foreign_keys=[motor_id])
    esc = relationship("Electronic", foreign_keys=[esc_id])
    servo = relationship("Electronic", foreign_keys=[servo_id])
    receiver = relationship("Electronic", foreign_keys=[receiver_id])


class ModelComment(Base):
    __tablename__ = "model_comments"

    id = Column(Integer, primary_key=True, index=True)
    model_id = Column(
        Integer, ForeignKey("models.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    model = relationship("Model", back_populates="comments")
    author = relationship("User", back_populates="comments")


class FeedbackPost(Base):
    __tablename__ = "feedback_posts"

    id = Column(Integer, primary_key=True, index=True)
    author_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title = Column(String(100), nullable=False)
    description = Column(String(1000), nullable=False)
    category = Column(String(20), nullable=False, default="feature")
    status = Column(String(20), nullable=False, default="open")
    vote_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    author = relationship("User", back_populates="feedback_posts")
    votes = relationship(
        "FeedbackVote", back_populates="post", cascade="all, delete-orphan"
    )

    # set per viewer by feedback queries
    has_voted = False


class FeedbackVote(Base):
    __tablename__ = "feedback_votes"
    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_feedback_vote"),
    )

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(
        Integer, ForeignKey("feedback_posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at = Column(DateTime, nullable=False, default=utcnow)

    post = relationship("FeedbackPost", back_populates="votes")
    user = relationship("User", back_populates="votes")


class AdminAuditLog(Base):
    __tablename__ = "admin_audit_log"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    action = Column(String(50), nullable=False)
    target_user_id = Column(Integer)
    details = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class FieldOption(Base):
    """Admin-managed choice offered for a free-text model or part field."""

    __tablename__ = "field_options"
    __table_args__ = (
        UniqueConstraint("field_key", "value", name="uq_field_option_value"),
    )

    id = Column(Integer, primary_key=True, index=True)
    field_key = Column(String(40), nullable=False, index=True)
    value = Column(String(100), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class UserActivity(Base):
    __tablename__ = "user_activity_log"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    activity_type = Column(String(50), nullable=False)
    details = Column(JSON, nullable=False, default=dict)
    ip_address = Column(String(64))
    user_agent = Column(String(255))
    created_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("User", back_populates="activities")
