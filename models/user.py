from enum import Enum

from sqlalchemy import Column, String
from sqlalchemy.orm import deferred, relationship
from sqlalchemy.types import Enum as SAEnum

from models.base_model import Base, BaseModel


class Role(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"
    MANAGER = "manager"


class User(BaseModel, Base):
    __tablename__ = "users"

    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    # argon2 encoded hash, not loaded unless asked for
    password = deferred(Column(String(255), nullable=False))
    role = Column(
        SAEnum(Role, name="user_role", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.CUSTOMER,
    )
    avatar = Column(String(512), nullable=True)
    phone_number = Column(String(20), nullable=True, index=True)

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<User {self.email}>"
