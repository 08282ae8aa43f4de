"""偏好设置存储：一个存储键下保存一份完整的 JSON，读写都以整体为单位"""
import json
from typing import Any, Dict, Optional
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cms_viewer.config import settings
from cms_viewer.models.db_models import ViewerSettingsRecord
from cms_viewer.models.viewer import ViewerSettings
from cms_viewer.utils.logger import logger


def parse_settings_blob(raw: Optional[str]) -> ViewerSettings:
    """
    解析持久化的 JSON；缺失的键用默认值补齐，
    内容缺失、损坏或结构非法时整体退回默认值
    """
    if not raw:
        return ViewerSettings()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"偏好设置 JSON 损坏，使用默认值: {e}")
        return ViewerSettings()
    if not isinstance(data, dict):
        logger.warning("偏好设置不是 JSON 对象，使用默认值")
        return ViewerSettings()
    try:
        return ViewerSettings.model_validate(data)
    except ValidationError as e:
        logger.warning(f"偏好设置校验失败，使用默认值: {e.error_count()} 处错误")
        return ViewerSettings()


class SettingsStore:
    """
    进程级偏好设置。读取方随时可读 current；写入只发生在用户显式操作之后。
    没有数据库时只保存在内存中。
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        storage_key: Optional[str] = None,
    ):
        self.session_factory = session_factory
        self.storage_key = storage_key or settings.settings_storage_key
        self.current = ViewerSettings(api_base_url=settings.cms_api_base_url)

    async def load(self) -> ViewerSettings:
        """从存储读取设置"""
        loaded = ViewerSettings()
        if self.session_factory is not None:
            try:
                async with self.session_factory() as session:
                    record = await self._get_record(session)
                    loaded = parse_settings_blob(record.data if record else None)
            except Exception as e:
                logger.warning(f"读取偏好设置失败，使用默认值: {e}")
        # 宿主注入的地址优先于存储中的空值
        if not loaded.api_base_url and settings.cms_api_base_url:
            loaded = loaded.model_copy(update={"api_base_url": settings.cms_api_base_url})
        self.current = loaded
        logger.info(f"偏好设置已加载: source={loaded.api_source}, view={loaded.main_view_mode.value}")
        return loaded

    async def save(self, new_settings: ViewerSettings) -> ViewerSettings:
        """
        整体校验后在一个事务里写入；失败时回滚，current 保持旧值

        Raises:
            ValidationError: 设置结构非法
        """
        validated = ViewerSettings.model_validate(new_settings.model_dump())
        if self.session_factory is not None:
            blob = json.dumps(validated.to_storage(), ensure_ascii=False)
            async with self.session_factory() as session:
                try:
                    record = await self._get_record(session)
                    if record is None:
                        session.add(ViewerSettingsRecord(storage_key=self.storage_key, data=blob))
                    else:
                        record.data = blob
                    await session.commit()
                except Exception:
                    await session.rollback()
                    logger.error(f"保存偏好设置失败: key={self.storage_key}")
                    raise
        self.current = validated
        logger.info(f"偏好设置已保存: key={self.storage_key}")
        return validated

    async def update(self, changes: Dict[str, Any]) -> ViewerSettings:
        """在当前设置上合并修改（可用 camelCase 或 snake_case 键）后保存"""
        fields = ViewerSettings.model_fields
        aliased = {(fields[k].alias if k in fields else k): v for k, v in changes.items()}
        merged = ViewerSettings.model_validate({**self.current.to_storage(), **aliased})
        return await self.save(merged)

    async def _get_record(self, session: AsyncSession) -> Optional[ViewerSettingsRecord]:
        result = await session.execute(
            select(ViewerSettingsRecord).where(ViewerSettingsRecord.storage_key == self.storage_key)
        )
        return result.scalars().first()
