# account_api/crud.py
from datetime import datetime
from typing import Generic, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from . import models

ModelT = TypeVar("ModelT")


class Repository(Generic[ModelT]):
    """Data access for one collection.

    find_* return None when nothing matches; insert/update/delete commit.
    """

    model: Type[ModelT]

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, obj_id) -> Optional[ModelT]:
        return self.db.get(self.model, obj_id)

    def find_one(self, **query) -> Optional[ModelT]:
        return self.db.query(self.model).filter_by(**query).first()

    def insert(self, **values) -> ModelT:
        obj = self.model(**values)
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def update(self, obj: ModelT, **values) -> ModelT:
        for key, value in values.items():
            setattr(obj, key, value)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def delete(self, **query) -> int:
        count = self.db.query(self.model).filter_by(**query).delete(synchronize_session="fetch")
        self.db.commit()
        return count


class UserRepository(Repository[models.User]):
    model = models.User

    def find_by_email(self, email: str):
        return self.find_one(email=email.strip().lower())

    def find_by_username(self, username: str):
        return self.find_one(username=username.strip())


class OtpRepository(Repository[models.OTP]):
    model = models.OTP

    def create(self, email: str, otp: str):
        return self.insert(email=email.strip().lower(), otp=otp)

    def find_match(self, email: str, otp: Optional[str]):
        # codes carry no expiry; any stored code for the email matches
        if not otp:
            return None
        return self.find_one(email=email.strip().lower(), otp=otp)


class LikedItemRepository(Repository[models.LikedItem]):
    model = models.LikedItem

    def delete_by_email(self, email: str) -> int:
        return self.delete(email=email.strip().lower())


class DeletionJobRepository(Repository[models.DeletionJob]):
    model = models.DeletionJob

    def find_by_user(self, user_id: str):
        return self.find_one(user_id=user_id)

    def find_due(self, now: datetime):
        return (
            self.db.query(models.DeletionJob)
            .filter(
                models.DeletionJob.status == models.DeletionJob.PENDING,
                models.DeletionJob.run_at <= now,
            )
            .order_by(models.DeletionJob.run_at)
            .all()
        )
