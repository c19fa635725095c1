# schemas.py

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


def clean_skills(skills: List[str]) -> List[str]:
    """Trims each skill, drops blanks and repeats, keeps the submitted order."""
    cleaned: List[str] = []
    for skill in skills:
        skill = (skill or "").strip()
        if skill and skill not in cleaned:
            cleaned.append(skill)
    return cleaned


# ===================== Submitted Form Fields =====================

class ProfileFields(BaseModel):
    """
    Scalar fields of a profile as submitted on create. Every field is required
    except `isActive`, which defaults to an active profile.
    """
    fullName: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=1)
    dob: date
    gender: Gender
    skills: List[str]
    department: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    isActive: bool = True

    @field_validator("skills")
    @classmethod
    def _skills_not_empty(cls, v: List[str]) -> List[str]:
        v = clean_skills(v)
        if not v:
            raise ValueError("Select at least one skill")
        return v

    class Config:
        str_strip_whitespace = True
        use_enum_values = True


class ProfileChanges(BaseModel):
    """
    Scalar fields submitted on update. Omitted fields stay None and are carried
    forward from the stored record; supplied fields must still be valid.
    """
    fullName: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=1)
    dob: Optional[date] = None
    gender: Optional[Gender] = None
    skills: Optional[List[str]] = None
    department: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = Field(None, min_length=1)
    isActive: Optional[bool] = None

    @field_validator("skills")
    @classmethod
    def _skills_not_empty(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        v = clean_skills(v)
        if not v:
            raise ValueError("Select at least one skill")
        return v

    class Config:
        str_strip_whitespace = True
        use_enum_values = True
