import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from familyhub.auth.passwords import (
    CredentialVerifier,
    check_family_password,
    check_personal_password,
)
from familyhub.database import Database
from familyhub.errors import DuplicateName, GalleryFull, InternalError, NotFound, ValidationError
from familyhub.models.family import Family
from familyhub.models.gallery_photo import MAX_GALLERY_PHOTOS, GalleryPhoto
from familyhub.models.user import ROLE_ADMIN, ROLE_MEMBER, User

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 120


@dataclass
class MemberProfile:
    full_name: str
    relationship: str
    has_children: bool = False
    date_of_birth: date | None = None


def _clean_profile(profile: MemberProfile) -> MemberProfile:
    full_name = (profile.full_name or "").strip()
    relationship = (profile.relationship or "").strip()

    if not full_name:
        raise ValidationError("Full name is required")
    if len(full_name) > MAX_NAME_LENGTH:
        raise ValidationError("Full name is too long")
    if not relationship:
        raise ValidationError("Please select your relationship")
    if len(relationship) > MAX_NAME_LENGTH:
        raise ValidationError("Relationship is too long")
    if profile.date_of_birth is not None and profile.date_of_birth > date.today():
        raise ValidationError("Date of birth cannot be in the future")

    return MemberProfile(
        full_name=full_name,
        relationship=relationship,
        has_children=bool(profile.has_children),
        date_of_birth=profile.date_of_birth,
    )


class IdentityStore:
    """
    Families and their members. Hashing goes through the credential
    verifier so each password domain keeps its own hasher.
    """

    def __init__(self, db: Database, credentials: CredentialVerifier):
        self.db = db
        self.credentials = credentials

    # ============================================================
    # REGISTER FAMILY
    # ============================================================

    def register_family(
        self,
        name: str,
        shared_password: str,
        admin_profile: MemberProfile,
        admin_password: str,
    ) -> tuple[str, str]:
        family_name = (name or "").strip()
        if not family_name:
            raise ValidationError("Family name is required")
        if len(family_name) > MAX_NAME_LENGTH:
            raise ValidationError("Family name is too long")

        # Validate everything before the first write
        profile = _clean_profile(admin_profile)
        check_family_password(shared_password)
        check_personal_password(admin_password)

        if self._family_name_taken(family_name):
            raise DuplicateName()

        family_hash = self.credentials.hash_family_password(shared_password)
        admin_hash = self.credentials.hash_user_password(admin_password)

        # Family, admin and admin link commit together or not at all
        try:
            with self.db.session_scope() as s:
                family = Family(family_name=family_name, password_hash=family_hash, admins=[])
                s.add(family)
                s.flush()

                admin = self._new_user(family.id, profile, admin_hash, ROLE_ADMIN)
                s.add(admin)
                s.flush()

                family.admins.append(admin)
                family_id, admin_id = family.id, admin.id
        except IntegrityError as exc:
            # Lost a race on the unique name
            if self._family_name_taken(family_name):
                raise DuplicateName() from exc
            logger.exception("Family registration failed")
            raise InternalError() from exc

        logger.info("Registered family %s with admin %s", family_id, admin_id)
        return family_id, admin_id

    # ============================================================
    # ADD MEMBER
    # ============================================================

    def add_member(self, family_id: str, profile: MemberProfile, personal_password: str) -> str:
        """
        Needs family context only. Whoever knows the family secret can add
        profiles; the boundary checks that secret, not a personal session.
        """
        cleaned = _clean_profile(profile)
        check_personal_password(personal_password)

        with self.db.session_scope() as s:
            if s.get(Family, family_id) is None:
                raise NotFound("Family not found")

        password_hash = self.credentials.hash_user_password(personal_password)

        try:
            with self.db.session_scope() as s:
                user = self._new_user(family_id, cleaned, password_hash, ROLE_MEMBER)
                s.add(user)
                s.flush()
                user_id = user.id
        except IntegrityError as exc:
            # Family vanished between the check and the insert
            logger.exception("Adding member to family %s failed", family_id)
            raise InternalError() from exc

        logger.info("Added member %s to family %s", user_id, family_id)
        return user_id

    # ============================================================
    # LOOKUPS
    # ============================================================

    def get_user(self, user_id: str) -> User:
        with self.db.session_scope() as s:
            user = s.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def list_members(self, family_id: str) -> list[User]:
        with self.db.session_scope() as s:
            return list(
                s.scalars(
                    select(User)
                    .where(User.family_id == family_id)
                    .order_by(User.created_at.asc(), User.full_name.asc())
                ).all()
            )

    # ============================================================
    # PHOTOS
    # ============================================================

    def set_profile_photo(self, user_id: str, blob_key: str) -> User:
        with self.db.session_scope() as s:
            user = s.get(User, user_id)
            if user is None:
                raise NotFound("User not found")
            user.profile_photo = blob_key
        return user

    def gallery_count(self, user_id: str) -> int:
        with self.db.session_scope() as s:
            return s.scalar(
                select(func.count(GalleryPhoto.id)).where(GalleryPhoto.user_id == user_id)
            ) or 0

    def append_gallery_photo(self, user_id: str, blob_key: str) -> int:
        """
        Appends iff fewer than MAX_GALLERY_PHOTOS are stored, returning the
        slot used. Each slot is claimed by its own insert; the unique
        (user_id, position) constraint makes concurrent appends to the same
        slot lose, so no interleaving stores a fifth photo.
        """
        with self.db.session_scope() as s:
            if s.get(User, user_id) is None:
                raise NotFound("User not found")
            taken = set(
                s.scalars(select(GalleryPhoto.position).where(GalleryPhoto.user_id == user_id)).all()
            )

        for position in range(MAX_GALLERY_PHOTOS):
            if position in taken:
                continue
            try:
                with self.db.session_scope() as s:
                    s.add(GalleryPhoto(user_id=user_id, position=position, blob_key=blob_key))
            except IntegrityError as exc:
                # Only a lost race for this slot moves on to the next one
                if self._slot_taken(user_id, position):
                    continue
                logger.exception("Gallery append for user %s failed", user_id)
                raise InternalError() from exc
            logger.info("Added gallery photo %s to user %s at slot %s", blob_key, user_id, position)
            return position

        raise GalleryFull()

    # ============================================================
    # HELPERS
    # ============================================================

    def _family_name_taken(self, family_name: str) -> bool:
        with self.db.session_scope() as s:
            return s.scalar(
                select(Family.id).where(Family.family_name == family_name)
            ) is not None

    def _slot_taken(self, user_id: str, position: int) -> bool:
        with self.db.session_scope() as s:
            return s.scalar(
                select(GalleryPhoto.id).where(
                    GalleryPhoto.user_id == user_id, GalleryPhoto.position == position
                )
            ) is not None

    def _new_user(self, family_id: str, profile: MemberProfile, password_hash: str, role: str) -> User:
        return User(
            family_id=family_id,
            full_name=profile.full_name,
            relationship=profile.relationship,
            has_children=profile.has_children,
            date_of_birth=profile.date_of_birth,
            role=role,
            password_hash=password_hash,
            gallery=[],
        )
