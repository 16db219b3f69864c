from sqlalchemy import Column, Integer, SmallInteger, String, Text, Numeric
from database import Base, prefix


class Membership(Base):
    __tablename__ = prefix("Memberships")

    group_id = Column("groupId", Integer, primary_key=True, autoincrement=True)
    name = Column("name", String(64), nullable=False)
    description = Column("description", String(191), nullable=True)
    permissions = Column("permissions", Text, nullable=False)  # serialized MembershipPermissions
    price = Column("price", Numeric(9, 2), nullable=False, default=0)
    expiration_days = Column("expirationDays", SmallInteger, nullable=False, default=0)  # 0 = never expires
    enable = Column("enable", SmallInteger, nullable=False, default=1)
