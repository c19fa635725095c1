# service.py

import logging
from typing import Any, Dict, List, Optional, Sequence

import pydantic

import db
from attachments import AttachmentStore, has_file
from errors import ProfileError, StorageFailure, ValidationError
from reconcile import AttachmentRefs, DesiredAttachments, reconcile
from schemas import ProfileChanges, ProfileFields
from utils import date_to_datetime, drop_none, field_errors, serialize_doc, serialize_docs, to_object_id

logger = logging.getLogger(__name__)


class ProfileService:
    """
    Create/update/delete flow for employee profiles. Files go to the attachment
    store first, then the record is written, then replaced files are removed.
    Nothing spans both stores transactionally: a failure after files are
    stored can leave unreferenced files behind, never a record pointing at a
    missing one.
    """

    def __init__(self, db_collection, attachments: AttachmentStore, gallery_max_files: int = 10):
        self.collection = db_collection
        self.attachments = attachments
        self.gallery_max_files = gallery_max_files

    # ----------------------------- Queries -----------------------------
    async def list_profiles(self) -> List[Dict[str, Any]]:
        return serialize_docs(await db.list_profiles(self.collection))

    async def get_profile(self, profile_id: str) -> Dict[str, Any]:
        oid = to_object_id(profile_id)
        return serialize_doc(await db.get_profile(self.collection, oid))

    # ----------------------------- Create -----------------------------
    async def create_profile(
        self,
        form: Dict[str, Any],
        resume=None,
        profile_image=None,
        gallery_images: Optional[Sequence] = None,
    ) -> Dict[str, Any]:
        fields = self._parse(ProfileFields, form)

        missing = {}
        if not has_file(resume):
            missing["resume"] = "Resume is required"
        if not has_file(profile_image):
            missing["profileImage"] = "Profile image is required"
        if missing:
            raise ValidationError("Resume and Profile Image are required", missing)

        gallery = self._gallery_uploads(gallery_images)
        self.attachments.check("resume", resume)
        self.attachments.check("profileImage", profile_image)
        for upload in gallery:
            self.attachments.check("galleryImage", upload)

        stored: List[str] = []
        resume_ref = await self._store("resume", resume, stored)
        image_ref = await self._store("profileImage", profile_image, stored)
        gallery_refs = [await self._store("galleryImage", upload, stored) for upload in gallery]

        refs = AttachmentRefs(resume=resume_ref, profile_image=image_ref, gallery=tuple(gallery_refs))
        record = {**fields, "dob": date_to_datetime(fields["dob"]), **refs.to_fields()}

        try:
            created = await db.create_profile(self.collection, record)
        except ProfileError:
            # files stay on disk, nothing references them
            logger.warning("Profile for %s not created, orphaned files: %s", fields["email"], stored)
            raise

        logger.info("[%s] Profile created for %s", created["_id"], fields["email"])
        return serialize_doc(created)

    # ----------------------------- Update -----------------------------
    async def update_profile(
        self,
        profile_id: str,
        form: Dict[str, Any],
        resume=None,
        profile_image=None,
        gallery_images: Optional[Sequence] = None,
        existing_gallery_images: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        oid = to_object_id(profile_id)
        changes = self._parse(ProfileChanges, form, exclude_none=True)
        if "dob" in changes:
            changes["dob"] = date_to_datetime(changes["dob"])

        gallery = self._gallery_uploads(gallery_images)
        if has_file(resume):
            self.attachments.check("resume", resume)
        if has_file(profile_image):
            self.attachments.check("profileImage", profile_image)
        for upload in gallery:
            self.attachments.check("galleryImage", upload)

        current = await db.get_profile(self.collection, oid)
        previous = AttachmentRefs.from_record(current)

        retained = [ref for ref in (existing_gallery_images or []) if ref]
        unknown = [ref for ref in retained if ref not in previous.gallery]
        if unknown:
            raise ValidationError(
                "Unknown gallery images",
                {"existingGalleryImages": "Not attached to this profile: " + ", ".join(unknown)},
            )

        stored: List[str] = []
        desired = DesiredAttachments(
            resume=await self._store("resume", resume, stored) if has_file(resume) else None,
            profile_image=await self._store("profileImage", profile_image, stored) if has_file(profile_image) else None,
            retained_gallery=tuple(retained),
            new_gallery=tuple([await self._store("galleryImage", upload, stored) for upload in gallery]),
        )
        plan = reconcile(previous, desired)

        try:
            updated = await db.update_profile(self.collection, oid, {**changes, **plan.final.to_fields()})
        except ProfileError:
            # old files are still referenced, keep them
            logger.warning("[%s] Update failed, orphaned files: %s", oid, stored)
            raise

        self._delete_files(oid, plan.to_delete)
        logger.info("[%s] Profile updated (%d files replaced or removed)", oid, len(plan.to_delete))
        return serialize_doc(updated)

    # ----------------------------- Delete -----------------------------
    async def delete_profile(self, profile_id: str) -> Dict[str, Any]:
        oid = to_object_id(profile_id)
        deleted = await db.delete_profile(self.collection, oid)
        self._delete_files(oid, AttachmentRefs.from_record(deleted).references())
        logger.info("[%s] Profile deleted", oid)
        return serialize_doc(deleted)

    # ----------------------------- Helpers -----------------------------
    @staticmethod
    def _parse(model, form: Dict[str, Any], exclude_none: bool = False) -> Dict[str, Any]:
        try:
            parsed = model(**drop_none(form))
        except pydantic.ValidationError as e:
            errors = field_errors(e)
            missing = any(msg == "Field required" for msg in errors.values())
            raise ValidationError("All fields are required" if missing else "Invalid input", errors)
        return parsed.model_dump(exclude_none=exclude_none)

    def _gallery_uploads(self, gallery_images: Optional[Sequence]) -> list:
        uploads = [u for u in (gallery_images or []) if has_file(u)]
        if len(uploads) > self.gallery_max_files:
            raise ValidationError(
                "Too many gallery images",
                {"galleryImages": f"At most {self.gallery_max_files} images per request"},
            )
        return uploads

    async def _store(self, category: str, upload, stored: List[str]) -> str:
        """Stores one upload; on failure removes what this request already stored."""
        try:
            ref = await self.attachments.store(category, upload)
        except (ValidationError, StorageFailure):
            for done in stored:
                try:
                    self.attachments.delete(done)
                except StorageFailure:
                    logger.warning("Could not roll back stored file %s", done)
            raise
        stored.append(ref)
        return ref

    def _delete_files(self, oid, references) -> None:
        for ref in references:
            try:
                self.attachments.delete(ref)
            except StorageFailure:
                # not retried, the file is unreferenced from here on
                logger.warning("[%s] Could not delete %s, left on disk", oid, ref)
