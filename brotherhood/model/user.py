from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from passlib.hash import scrypt
from sqlalchemy.orm import Mapped, mapped_column

from brotherhood.db import db

if TYPE_CHECKING:
    from flask_sqlalchemy.model import Model
else:
    Model = db.Model


class User(Model):
    __tablename__ = "users"

    EMAIL_MAX_LENGTH = 255
    DISPLAY_NAME_MAX_LENGTH = 100
    PASSWORD_MIN_LENGTH = 12
    PASSWORD_MAX_LENGTH = 128
    PASSWORD_HASH_MAX_LENGTH = 512

    id: Mapped[int] = mapped_column(primary_key=True, nullable=False, autoincrement=True)
    email: Mapped[str] = mapped_column(db.String(EMAIL_MAX_LENGTH), unique=True, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(db.String(DISPLAY_NAME_MAX_LENGTH))
    is_admin: Mapped[bool] = mapped_column(default=False)
    _password_hash: Mapped[str] = mapped_column(
        "password_hash", db.String(PASSWORD_HASH_MAX_LENGTH)
    )
    created_at: Mapped[datetime] = mapped_column(default=datetime.now)

    @property
    def password_hash(self) -> str:
        """Return the hashed password."""
        return self._password_hash

    @password_hash.setter
    def password_hash(self, plaintext_password: str) -> None:
        """Hash plaintext password using scrypt and store it."""
        self._password_hash = scrypt.hash(plaintext_password)

    def check_password(self, plaintext_password: str) -> bool:
        """Check the plaintext password against the stored hash."""
        return scrypt.verify(plaintext_password, self._password_hash)

    @staticmethod
    def by_email(email: str) -> "User | None":
        return db.session.scalars(
            db.select(User).filter_by(email=email.strip().lower())
        ).one_or_none()

    def __init__(self, **kwargs: Any) -> None:
        for key in ["password_hash", "_password_hash"]:
            if key in kwargs:
                raise ValueError(f"Key {key!r} cannot be mannually set. Try 'password' instead.")
        pw = kwargs.pop("password", None)
        if email := kwargs.get("email"):
            kwargs["email"] = email.strip().lower()
        super().__init__(**kwargs)
        self.password_hash = pw

    def __repr__(self) -> str:
        return f"<User {self.email}>"
