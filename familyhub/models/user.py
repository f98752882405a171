import uuid

from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey
from sqlalchemy.types import Date
from sqlalchemy import orm
from sqlalchemy.orm import validates

from familyhub.database import Base
from familyhub.models.family import utcnow

ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)

    family_id = Column(
        String,
        ForeignKey("families.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    full_name = Column(String, nullable=False)
    relationship = Column(String, nullable=False)
    has_children = Column(Boolean, default=False, nullable=False)
    date_of_birth = Column(Date, nullable=True)

    role = Column(String, default=ROLE_MEMBER, nullable=False)  # member | admin

    # Personal secret; never shares a hash with the family password
    password_hash = Column(String, nullable=False)

    # Blob key of the profile picture
    profile_photo = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # -------------------------------------------------------
    # RELATIONSHIPS
    # -------------------------------------------------------

    gallery = orm.relationship(
        "GalleryPhoto",
        back_populates="user",
        order_by="GalleryPhoto.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    documents = orm.relationship("Document", back_populates="owner")

    @validates("family_id")
    def _freeze_family(self, key, value):
        if self.family_id is not None and value != self.family_id:
            raise ValueError("A user cannot move to another family")
        return value

    @property
    def gallery_photos(self) -> list[str]:
        return [p.blob_key for p in self.gallery]
