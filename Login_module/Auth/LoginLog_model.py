from sqlalchemy import Column, Integer, String, DateTime
from database import Base, prefix


class LoginLogColumns:
    """Append-only record written on every successful login."""
    id = Column("sessionLogId", Integer, primary_key=True, autoincrement=True)
    email = Column("email", String(120), nullable=False, index=True)
    username = Column("username", String(40), nullable=True)
    first_name = Column("firstName", String(50), nullable=True)
    ip = Column("ip", String(45), nullable=True, index=True)
    date_time = Column("dateTime", DateTime, nullable=False, index=True)


class MemberLoginLog(LoginLogColumns, Base):
    __tablename__ = prefix("MembersLogSess")


class AffiliateLoginLog(LoginLogColumns, Base):
    __tablename__ = prefix("AffiliatesLogSess")


class AdminLoginLog(LoginLogColumns, Base):
    __tablename__ = prefix("AdminsLogSess")
