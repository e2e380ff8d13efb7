"""
RefreshToken model: the server-side reference that backs a refresh token.

A refresh JWT carries the row id as `tokenId`; deleting the row revokes the
token whatever its cryptographic expiry.

Fields:
- id (UUID) - becomes the JWT `tokenId` / `jti`
- user_id (String(36)) - FK to users.id, set to NULL when the user is deleted
- expires_at
- created_at, updated_at
"""
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    user = relationship("User", back_populates="refresh_tokens")

    def __repr__(self):
        return f"<RefreshToken id={self.id} user={self.user_id}>"
