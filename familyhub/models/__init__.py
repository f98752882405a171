from familyhub.models.family import Family, family_admins
from familyhub.models.user import User
from familyhub.models.gallery_photo import GalleryPhoto
from familyhub.models.document import Document

__all__ = ["Family", "family_admins", "User", "GalleryPhoto", "Document"]
