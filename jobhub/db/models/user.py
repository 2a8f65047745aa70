from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from jobhub.common.enums import UserRole
from jobhub.db.base import BaseModel


class User(BaseModel):
    """Projection of an identity managed by the auth collaborator."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    role: Mapped[UserRole] = mapped_column(String(20), nullable=False, default=UserRole.CUSTOMER)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
