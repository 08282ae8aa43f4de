"""数据库模型"""
from sqlalchemy import Column, String, Integer, DateTime, Text, Index
from sqlalchemy.dialects.mysql import LONGTEXT
from sqlalchemy.sql import func
from cms_viewer.database import Base


class ViewerSettingsRecord(Base):
    """查看器偏好设置（一个存储键对应一份 JSON）"""
    __tablename__ = "viewer_settings"

    id = Column(Integer, primary_key=True, autoincrement=True, comment="主键ID")
    storage_key = Column(String(128), nullable=False, comment="存储键，如 wpApiViewerSettings")
    data = Column(Text().with_variant(LONGTEXT(), "mysql"), nullable=False, comment="设置 JSON")
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), comment="更新时间")

    __table_args__ = (
        Index("idx_viewer_settings_key", "storage_key", unique=True),
    )
