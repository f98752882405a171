import uuid

from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Integer
from sqlalchemy.orm import relationship

from familyhub.database import Base
from familyhub.models.family import utcnow

DEFAULT_CATEGORY = "Other"

DOCUMENT_CATEGORIES = (
    "Birth Certificates",
    "Education",
    "Medical",
    "Legal Documents",
    "Insurance",
    "Financial",
    "Other",
)


class Document(Base):
    __tablename__ = "documents"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # File info
    blob_key = Column(String, unique=True, nullable=False)
    original_filename = Column(String, nullable=False)
    file_size = Column(Integer, nullable=False)
    file_type = Column(String, nullable=False)  # content type

    category = Column(String, nullable=False, default=DEFAULT_CATEGORY)

    # Widens visibility to the owner's family only
    is_shared = Column(Boolean, nullable=False, default=False)

    upload_date = Column(DateTime, default=utcnow, index=True)

    owner = relationship("User", back_populates="documents")
