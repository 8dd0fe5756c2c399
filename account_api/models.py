# account_api/models.py
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import validates
from sqlalchemy.sql import func

from .database import Base


def new_id():
    return str(uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String(50), unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    phone_number = Column(String, nullable=False)
    email = Column(String(50), unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    image = Column(Text, nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    marked_for_deletion = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @validates("email")
    def normalize_email(self, key, value):
        return value.strip().lower()

    @validates("username")
    def normalize_username(self, key, value):
        return value.strip()


class OTP(Base):
    __tablename__ = "otps"

    id = Column(Integer, primary_key=True, index=True)
    # matched by value, there is no foreign key to users
    email = Column(String(50), index=True, nullable=False)
    otp = Column(String(6), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class LikedItem(Base):
    __tablename__ = "liked_items"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(50), index=True, nullable=False)
    item = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class DeletionJob(Base):
    __tablename__ = "deletion_jobs"

    PENDING = "pending"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), unique=True, index=True, nullable=False)
    email = Column(String(50), nullable=False)
    run_at = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(String(16), default=PENDING, nullable=False)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)
