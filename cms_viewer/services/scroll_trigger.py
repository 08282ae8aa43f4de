"""无限滚动触发器：哨兵进入视口时，按策略决定是否调用 Loader"""
from enum import Enum
from typing import Callable, Optional

from cms_viewer.models.viewer import MainViewMode, ViewerSettings
from cms_viewer.services.loader import FeedLoader, LoadOutcome
from cms_viewer.utils.logger import logger

# 轮播模式下的导航不代表“滚动到底部”，不自动加载
AUTO_LOAD_VIEW_MODES = (MainViewMode.FEED, MainViewMode.GRID)


class TriggerState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"


class InfiniteScrollTrigger:
    """
    两态状态机：初始 ARMED，监视当前哨兵。
    每次检查后自动重新 ARMED；只有哨兵被替换（视图重置）时旧哨兵才失效。
    """

    def __init__(self, loader: FeedLoader, settings_provider: Callable[[], ViewerSettings]):
        self.loader = loader
        self._settings = settings_provider
        self.state = TriggerState.ARMED
        self.sentinel_id = 1

    def replace_sentinel(self) -> int:
        """视图重置时换一个新哨兵，旧哨兵的可见事件将被忽略"""
        self.sentinel_id += 1
        self.state = TriggerState.ARMED
        return self.sentinel_id

    def should_load(self) -> bool:
        """策略判断：未在加载、还有更多、开启自动加载、且为列表/网格模式"""
        state = self.loader.state
        viewer = self._settings()
        return (
            not state.is_loading
            and state.has_more
            and viewer.load_more_enabled
            and viewer.main_view_mode in AUTO_LOAD_VIEW_MODES
        )

    async def on_sentinel_visible(self, sentinel_id: Optional[int] = None) -> Optional[LoadOutcome]:
        """
        哨兵进入视口

        Args:
            sentinel_id: 前端上报的哨兵 ID，为空表示当前哨兵

        Returns:
            触发了加载时返回加载结果，否则 None
        """
        if sentinel_id is not None and sentinel_id != self.sentinel_id:
            logger.debug(f"忽略过期哨兵事件: {sentinel_id} (当前 {self.sentinel_id})")
            return None
        if self.state != TriggerState.ARMED:
            return None

        self.state = TriggerState.IDLE
        try:
            if not self.should_load():
                return None
            return await self.loader.load_next_page()
        finally:
            self.state = TriggerState.ARMED
