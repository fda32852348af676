from ..db import Base
from sqlalchemy import String
from sqlalchemy import Column, Enum as SQLAlchemyEnum
from fastapi_users.db import SQLAlchemyBaseUserTableUUID
import enum

class UserRole(str, enum.Enum):
    STUDENT = "student"
    TRAINER = "trainer"
    ADMIN = "admin"
    MASTER = "master"

# roles allowed to review other users' submissions and manage test cases
STAFF_ROLES = (UserRole.TRAINER, UserRole.ADMIN, UserRole.MASTER)

class User(SQLAlchemyBaseUserTableUUID, Base):
    __tablename__ = "users"
    full_name = Column(String)
    role = Column(SQLAlchemyEnum(UserRole), default=UserRole.STUDENT)
