from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from familyhub.database import Base
from familyhub.models.family import utcnow

MAX_GALLERY_PHOTOS = 4


class GalleryPhoto(Base):
    """
    One slot of a user's personal gallery.

    (user_id, position) is unique and position is bounded, so the database
    itself refuses a fifth photo no matter how many appends race.
    """

    __tablename__ = "gallery_photos"
    __table_args__ = (
        UniqueConstraint("user_id", "position", name="uq_gallery_user_position"),
        CheckConstraint(
            f"position >= 0 AND position < {MAX_GALLERY_PHOTOS}",
            name="ck_gallery_position_range",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    position = Column(Integer, nullable=False)
    blob_key = Column(String, nullable=False)

    added_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="gallery")
