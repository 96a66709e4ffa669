from sqlalchemy import Column, String, Text, ForeignKey, Table, Index
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base

# Association table: one row per (post, user) like; rows go away with either side
post_likes = Table(
    "post_likes",
    Base.metadata,
    Column("post_id", String(36), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Post(BaseModel, Base):
    __tablename__ = "posts"

    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    owner_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Stored filename under STORAGE_DIR, served from /storage/<image>
    image = Column(String(255), nullable=True)

    owner = relationship("User", lazy="joined")
    likes = relationship("User", secondary=post_likes, order_by="User.username")
    comments = relationship(
        "Comment",
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_posts_created_at", "created_at"),
    )

    def is_liked_by(self, user_id: str) -> bool:
        return any(u.id == user_id for u in self.likes)
