from datetime import date, datetime
from typing import Any, List, Optional
import enum
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config import settings
from Login_module.Utils.Security import HASH_VALIDATION_LENGTH
from .Member_model import SEX_VALUES, ActiveState


class SearchOrder(str, enum.Enum):
    LATEST = "latest"
    LAST_ACTIVITY = "last_activity"
    VIEWS = "views"
    RATING = "rating"
    USERNAME = "username"
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    EMAIL = "email"


class SortDirection(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


def split_match_sex(value: Any) -> List[str]:
    """matchSex is stored as 'male,female'; accept that or a list."""
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [str(v).strip() for v in value if str(v).strip()]


class MemberCreate(BaseModel):
    """Registration payload for a new member account."""
    email: str = Field(..., max_length=120)
    username: str = Field(..., max_length=40)
    password: str = Field(..., min_length=1)
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    sex: Optional[str] = None
    match_sex: List[str] = Field(default_factory=list)
    birth_date: Optional[date] = None
    ip: Optional[str] = Field(None, max_length=45)
    hash_validation: Optional[str] = None
    is_active: Optional[int] = None

    # MembersInfo fields, stored as empty strings when missing
    middle_name: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    social_network_site: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        v = v.strip()
        email_pattern = r'^[^@\s]+@[^@\s]+\.[^@\s]+$'
        if not re.match(email_pattern, v):
            raise ValueError('Invalid email format')
        return v

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Username cannot be empty')
        if v.lower() == settings.GHOST_USERNAME.lower():
            raise ValueError('This username is reserved')
        return v

    @field_validator("sex")
    @classmethod
    def validate_sex(cls, v):
        if v is not None and v not in SEX_VALUES:
            raise ValueError(f"Sex must be one of {', '.join(SEX_VALUES)}")
        return v

    @field_validator("match_sex", mode="before")
    @classmethod
    def validate_match_sex(cls, v):
        values = split_match_sex(v)
        unknown = [s for s in values if s not in SEX_VALUES]
        if unknown:
            raise ValueError(f"Unknown matchSex value(s): {', '.join(unknown)}")
        return values

    @field_validator("hash_validation")
    @classmethod
    def validate_hash_validation(cls, v):
        if v and len(v) != HASH_VALIDATION_LENGTH:
            raise ValueError(f'Hash validation must be {HASH_VALIDATION_LENGTH} characters')
        return v or None

    @field_validator("is_active")
    @classmethod
    def validate_is_active(cls, v):
        if v is not None and v not in {s.value for s in ActiveState}:
            raise ValueError('is_active must be 0, 1 or 2')
        return v

    @field_validator("country")
    @classmethod
    def validate_country(cls, v):
        if v:
            v = v.strip().upper()
            if len(v) != 2:
                raise ValueError('Country must be an ISO-3166 alpha-2 code')
        return v


class MemberOut(BaseModel):
    """Identity row of a realm table (the password hash is never exposed)."""
    profile_id: int
    email: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    sex: Optional[str] = None
    match_sex: List[str] = Field(default_factory=list)
    birth_date: Optional[date] = None
    active: int
    user_status: int
    group_id: int
    membership_date: Optional[datetime] = None
    join_date: Optional[datetime] = None
    last_activity: Optional[datetime] = None
    last_edit: Optional[datetime] = None
    ip: Optional[str] = None
    hash_validation: Optional[str] = None
    avatar: Optional[str] = None
    approved_avatar: int = 1
    ban: int = 0
    views: int = 0
    votes: int = 0
    score: float = 0

    @field_validator("match_sex", mode="before")
    @classmethod
    def split_stored_match_sex(cls, v):
        return split_match_sex(v)

    model_config = ConfigDict(from_attributes=True)


class MemberInfoOut(BaseModel):
    middle_name: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    social_network_site: Optional[str] = None
    height: Optional[int] = None
    weight: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class MemberPrivacyOut(BaseModel):
    profile_id: int
    privacy_profile: str
    search_profile: str
    user_save_views: str

    model_config = ConfigDict(from_attributes=True)


class MemberNotificationOut(BaseModel):
    profile_id: int
    enable_newsletters: int
    new_msg: int
    friend_request: int
    comment_msg: int

    model_config = ConfigDict(from_attributes=True)


class ProfileRow(MemberOut):
    """A member joined with its privacy and info rows (search and listings)."""
    privacy_profile: Optional[str] = None
    search_profile: Optional[str] = None
    user_save_views: Optional[str] = None
    middle_name: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    social_network_site: Optional[str] = None
    height: Optional[int] = None
    weight: Optional[int] = None

    @classmethod
    def from_row(cls, member, privacy=None, info=None) -> "ProfileRow":
        data = MemberOut.model_validate(member).model_dump()
        if privacy is not None:
            data.update(MemberPrivacyOut.model_validate(privacy).model_dump(exclude={"profile_id"}))
        if info is not None:
            data.update(MemberInfoOut.model_validate(info).model_dump())
        return cls(**data)


class AvatarOut(BaseModel):
    profile_id: int
    pic: Optional[str] = None
    approved_avatar: int


class UsernameOut(BaseModel):
    profile_id: int
    username: str
    sex: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class HashValidationOut(BaseModel):
    email: str
    username: str
    first_name: Optional[str] = None
    hash_validation: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


def _optional_int(v):
    if v is None or v == "":
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


def _optional_str(v):
    if v is None:
        return None
    return str(v)


class SearchParams(BaseModel):
    """
    Optional predicates of a member search.
    Values that do not validate are dropped instead of failing the search.
    """
    email: Optional[str] = None
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    age: Optional[int] = None
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    height: Optional[int] = None
    weight: Optional[int] = None
    country: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    sex: List[str] = Field(default_factory=list)
    match_sex: Optional[str] = None
    online: bool = False
    avatar: bool = False
    order: Optional[str] = None
    sort: Optional[str] = None

    @field_validator("age", "min_age", "max_age", "height", "weight", mode="before")
    @classmethod
    def drop_invalid_numbers(cls, v):
        return _optional_int(v)

    @field_validator(
        "email", "first_name", "middle_name", "last_name", "country", "city", "state",
        "zip_code", "match_sex", "order", "sort", mode="before"
    )
    @classmethod
    def stringify(cls, v):
        return _optional_str(v)

    @field_validator("sex", mode="before")
    @classmethod
    def keep_known_sex(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return [s for s in v if s in SEX_VALUES]

    @field_validator("online", "avatar", mode="before")
    @classmethod
    def truthy(cls, v):
        return bool(v)
