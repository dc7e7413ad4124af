"""Archive link model - external documents filed under an event."""
import enum
from sqlalchemy import Column, Integer, String, Boolean, BigInteger, TIMESTAMP, ForeignKey, Text
from sqlalchemy.sql import func
from eventsphere.database import Base


class ArchiveFileType(str, enum.Enum):
    """Kind of archived document."""
    DOCUMENT = "document"
    SPREADSHEET = "spreadsheet"
    PRESENTATION = "presentation"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    OTHER = "other"


class ArchiveAccessLevel(str, enum.Enum):
    """Who may open an archive link."""
    PUBLIC = "public"
    EVENT_MEMBERS = "event_members"
    MANAGEMENT = "management"
    ADMIN = "admin"


class ArchiveLink(Base):
    """A link to an archived file; exists only while its event exists."""

    __tablename__ = "archive_links"

    id = Column(Integer, primary_key=True, index=True)

    event_id = Column(Integer, ForeignKey('events.id'), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    drive_url = Column(String(1000), nullable=False)
    description = Column(Text, nullable=True)
    file_type = Column(String(20), default=ArchiveFileType.OTHER.value, nullable=False)
    size = Column(BigInteger, nullable=True)  # bytes
    is_public = Column(Boolean, default=False, nullable=False)
    access_level = Column(String(20), default=ArchiveAccessLevel.EVENT_MEMBERS.value, nullable=False)
    download_count = Column(Integer, default=0, nullable=False)
    last_accessed_at = Column(TIMESTAMP(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<ArchiveLink(id={self.id}, event_id={self.event_id}, title={self.title})>"
