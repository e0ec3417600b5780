"""Blob ORM model — one durable key/value record per blob key."""

from sqlalchemy import Column, DateTime, Integer, String, Text, func

from database import Base


class BlobModel(Base):
    __tablename__ = "blobs"

    key = Column(String, primary_key=True)
    content = Column(Text, nullable=False)
    content_type = Column(String, nullable=False, default="application/json")
    size = Column(Integer, default=0)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
