from sqlalchemy import Column, String, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from familyhub.database import Base
import uuid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Set of admin user ids per family
family_admins = Table(
    "family_admins",
    Base.metadata,
    Column("family_id", String, ForeignKey("families.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Family(Base):
    __tablename__ = "families"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Globally unique; the unique index is what settles registration races
    family_name = Column(String, unique=True, index=True, nullable=False)

    password_hash = Column(String, nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    admins = relationship(
        "User",
        secondary=family_admins,
        lazy="selectin",
    )

    @property
    def admin_ids(self) -> list[str]:
        return [u.id for u in self.admins]
