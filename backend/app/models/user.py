from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base

ROLE_USER = "user"
ROLE_EMPLOYER = "employer"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_EMPLOYER, ROLE_ADMIN)


class User(Base):
    __tablename__ = "users"

    # Never serialized unless a caller explicitly asks for them.
    __hidden_fields__ = ("password", "reset_password_token", "reset_password_expire")

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)  # store hashed password
    role = Column(String(20), nullable=False, default=ROLE_USER)  # user / employer / admin
    # sha256 hex digest of the raw token mailed to the user
    reset_password_token = Column(String(128), nullable=True, index=True)
    reset_password_expire = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships. Account deletion goes through services.cascade, which also
    # removes resume files; the ORM cascades keep rows consistent either way.
    jobs_published = relationship(
        "Job", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    applications = relationship(
        "Application", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
