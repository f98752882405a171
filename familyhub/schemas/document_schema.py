from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class DocumentOut(BaseModel):
    id: str
    user_id: str

    blob_key: str
    original_filename: str
    file_size: int
    file_type: str

    category: str
    is_shared: bool
    upload_date: datetime

    # Filled in by the family/visible listings
    owner_name: Optional[str] = None
    owner_relationship: Optional[str] = None

    class Config:
        from_attributes = True


class SharingUpdate(BaseModel):
    is_shared: bool


class UploadOut(BaseModel):
    message: str = "File uploaded successfully"
    blob_key: str
    filename: str
    content_type: str
    size: int

    document: Optional[DocumentOut] = None
    gallery_position: Optional[int] = None
