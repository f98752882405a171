from pydantic import BaseModel
from typing import Optional, List
from datetime import date, datetime


# --------------------------------------------------
# PROFILE
# --------------------------------------------------
class ProfileBase(BaseModel):
    full_name: str
    relationship: str
    has_children: bool = False
    date_of_birth: Optional[date] = None


# --------------------------------------------------
# CREATE (needs the family secret, not a session)
# --------------------------------------------------
class UserCreateRequest(ProfileBase):
    family_id: str
    family_password: str
    password: str


# --------------------------------------------------
# LOGIN
# --------------------------------------------------
class UserLoginRequest(BaseModel):
    user_id: str
    password: str


# --------------------------------------------------
# OUT
# --------------------------------------------------
class UserOut(BaseModel):
    id: str
    family_id: str

    full_name: str
    relationship: str
    has_children: bool
    date_of_birth: Optional[date] = None

    role: str

    profile_photo: Optional[str] = None
    gallery_photos: List[str] = []

    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserLoginOut(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserOut
