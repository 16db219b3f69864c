from sqlalchemy import Column, String
from database import Base, prefix


class SiteSetting(Base):
    """Key/value site configuration editable from the admin panel."""
    __tablename__ = prefix("Settings")

    name = Column("settingName", String(64), primary_key=True)
    value = Column("settingValue", String(191), nullable=True)
    description = Column("description", String(120), nullable=True)
