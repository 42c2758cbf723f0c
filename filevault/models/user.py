from sqlalchemy import Column, Integer, String

from filevault.models.database import Base

USERNAME_MAX_LENGTH = 50


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    # unique index makes concurrent signups with one name fail at insert time
    name = Column(String(USERNAME_MAX_LENGTH), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)
