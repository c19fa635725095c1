# reconcile.py

from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Tuple


@dataclass(frozen=True)
class AttachmentRefs:
    """The attachment references a profile record holds."""
    resume: Optional[str] = None
    profile_image: Optional[str] = None
    gallery: Tuple[str, ...] = ()

    @classmethod
    def from_record(cls, record: dict) -> "AttachmentRefs":
        return cls(
            resume=record.get("resume") or None,
            profile_image=record.get("profileImage") or None,
            gallery=tuple(record.get("galleryImages") or ()),
        )

    def to_fields(self) -> dict:
        return {
            "resume": self.resume,
            "profileImage": self.profile_image,
            "galleryImages": list(self.gallery),
        }

    def references(self) -> List[str]:
        refs = [self.resume, self.profile_image, *self.gallery]
        return [r for r in refs if r]


@dataclass(frozen=True)
class DesiredAttachments:
    """
    What an update asks for. `resume`/`profile_image` are references of newly
    stored uploads (None keeps the previous one). `retained_gallery` lists the
    previous gallery references to keep, in the caller's order.
    """
    resume: Optional[str] = None
    profile_image: Optional[str] = None
    retained_gallery: Tuple[str, ...] = ()
    new_gallery: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ReconcilePlan:
    to_delete: FrozenSet[str]
    final: AttachmentRefs


def reconcile(previous: AttachmentRefs, desired: DesiredAttachments) -> ReconcilePlan:
    doomed = set()

    resume = previous.resume
    if desired.resume:
        if previous.resume:
            doomed.add(previous.resume)
        resume = desired.resume

    profile_image = previous.profile_image
    if desired.profile_image:
        if previous.profile_image:
            doomed.add(previous.profile_image)
        profile_image = desired.profile_image

    retained = set(desired.retained_gallery)
    doomed.update(ref for ref in previous.gallery if ref not in retained)

    final = AttachmentRefs(
        resume=resume,
        profile_image=profile_image,
        gallery=tuple(desired.retained_gallery) + tuple(desired.new_gallery),
    )
    # never delete something the record still points at
    return ReconcilePlan(to_delete=frozenset(doomed - set(final.references())), final=final)
