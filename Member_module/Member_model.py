import enum
from sqlalchemy import Column, Integer, SmallInteger, String, Text, Date, DateTime, Float, Enum
from database import Base, prefix


class ActiveState(enum.IntEnum):
    DISABLED = 0
    ACTIVE = 1
    PENDING = 2


class UserStatus(enum.IntEnum):
    OFFLINE = 0
    ONLINE = 1
    BUSY = 2
    AWAY = 3


SEX_VALUES = ("male", "female", "couple")


class IdentityColumns:
    """
    Columns shared by every realm table (Members, Affiliates, Admins).
    No database-level foreign keys: dependent rows are cleaned up in code.
    """
    profile_id = Column("profileId", Integer, primary_key=True, autoincrement=True)
    email = Column("email", String(120), unique=True, nullable=False, index=True)
    username = Column("username", String(40), unique=True, nullable=False, index=True)
    password = Column("password", String(120), nullable=False)
    first_name = Column("firstName", String(50), nullable=True)
    last_name = Column("lastName", String(50), nullable=True)
    sex = Column("sex", String(20), nullable=True)  # male, female, couple
    match_sex = Column("matchSex", String(50), nullable=True)  # comma separated sex values
    birth_date = Column("birthDate", Date, nullable=True)

    active = Column("active", SmallInteger, nullable=False, default=ActiveState.ACTIVE)
    user_status = Column("userStatus", SmallInteger, nullable=False, default=UserStatus.OFFLINE)
    group_id = Column("groupId", Integer, nullable=False, default=2, index=True)
    membership_date = Column("membershipDate", DateTime, nullable=True)

    join_date = Column("joinDate", DateTime, nullable=True)
    last_activity = Column("lastActivity", DateTime, nullable=True)
    last_edit = Column("lastEdit", DateTime, nullable=True)
    ip = Column("ip", String(45), nullable=True, index=True)
    hash_validation = Column("hashValidation", String(40), nullable=True)

    avatar = Column("avatar", String(200), nullable=True)
    approved_avatar = Column("approvedAvatar", SmallInteger, nullable=False, default=1)
    ban = Column("ban", SmallInteger, nullable=False, default=0)

    views = Column("views", Integer, nullable=False, default=0)
    votes = Column("votes", Integer, nullable=False, default=0)
    score = Column("score", Float, nullable=False, default=0)


class Member(IdentityColumns, Base):
    __tablename__ = prefix("Members")


class Affiliate(IdentityColumns, Base):
    __tablename__ = prefix("Affiliates")


class Admin(IdentityColumns, Base):
    __tablename__ = prefix("Admins")


class MemberInfo(Base):
    __tablename__ = prefix("MembersInfo")

    profile_id = Column("profileId", Integer, primary_key=True, autoincrement=False)
    middle_name = Column("middleName", String(50), nullable=True)
    country = Column("country", String(2), nullable=True, index=True)  # ISO-3166 alpha-2
    city = Column("city", String(150), nullable=True)
    state = Column("state", String(150), nullable=True)
    zip_code = Column("zipCode", String(20), nullable=True)
    description = Column("description", Text, nullable=True)
    website = Column("website", String(120), nullable=True)
    social_network_site = Column("socialNetworkSite", String(120), nullable=True)
    height = Column("height", SmallInteger, nullable=True)
    weight = Column("weight", SmallInteger, nullable=True)


class MemberPrivacy(Base):
    __tablename__ = prefix("MembersPrivacy")

    profile_id = Column("profileId", Integer, primary_key=True, autoincrement=False)
    privacy_profile = Column(
        "privacyProfile",
        Enum("all", "members", "friends", "only_me", name="privacy_profile", native_enum=False),
        nullable=False,
        default="all",
    )
    search_profile = Column("searchProfile", Enum("yes", "no", name="search_profile", native_enum=False), nullable=False, default="yes")
    user_save_views = Column("userSaveViews", Enum("yes", "no", name="user_save_views", native_enum=False), nullable=False, default="yes")


class MemberNotification(Base):
    __tablename__ = prefix("MembersNotifications")

    profile_id = Column("profileId", Integer, primary_key=True, autoincrement=False)
    enable_newsletters = Column("enableNewsletters", SmallInteger, nullable=False, default=0)
    new_msg = Column("newMsg", SmallInteger, nullable=False, default=1)
    friend_request = Column("friendRequest", SmallInteger, nullable=False, default=1)
    comment_msg = Column("commentMsg", SmallInteger, nullable=False, default=1)


class MemberBackground(Base):
    __tablename__ = prefix("MembersBackground")

    profile_id = Column("profileId", Integer, primary_key=True, autoincrement=False)
    file = Column("file", String(191), nullable=False)
    approved = Column("approved", SmallInteger, nullable=False, default=1)
