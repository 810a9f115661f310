"""ORM model for blog posts."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, func, false
from sqlalchemy.orm import relationship

from app.models.base import Base
from app.models.user import new_id, utcnow


class Post(Base):
    """Blog post owned by its author. Visible to everyone only once published."""

    __tablename__ = "posts"

    id = Column(String(32), primary_key=True, default=new_id)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    published = Column(Boolean, nullable=False, default=False, server_default=false(), index=True)
    author_id = Column(
        String(32),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    author = relationship("User", back_populates="posts")
