from pydantic import BaseModel
from typing import Optional, List
from datetime import date, datetime

from familyhub.schemas.user_schema import UserOut


# --------------------------------------------------
# REGISTER
# --------------------------------------------------
class FamilyRegisterRequest(BaseModel):
    family_name: str
    password: str

    # Founding admin
    admin_name: str
    admin_relationship: str
    admin_has_children: bool = False
    admin_date_of_birth: Optional[date] = None
    admin_password: str


class FamilyRegisterOut(BaseModel):
    message: str = "Family created successfully"
    family_id: str
    admin_id: str


# --------------------------------------------------
# LOGIN
# --------------------------------------------------
class FamilyLoginRequest(BaseModel):
    family_name: str
    password: str


class FamilyOut(BaseModel):
    id: str
    family_name: str
    admin_ids: List[str] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FamilyLoginOut(BaseModel):
    family: FamilyOut
    members: List[UserOut] = []
