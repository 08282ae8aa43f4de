"""视图树模型：渲染结果，由前端负责绘制"""
from typing import Any, Dict, List
from pydantic import BaseModel, Field


class ViewNode(BaseModel):
    """视图节点"""
    kind: str = Field(..., description="节点类型，如 list / grid / card")
    props: Dict[str, Any] = Field(default_factory=dict)
    children: List["ViewNode"] = Field(default_factory=list)

    def find(self, kind: str) -> List["ViewNode"]:
        """深度优先查找指定类型的所有节点"""
        found = [self] if self.kind == kind else []
        for child in self.children:
            found.extend(child.find(kind))
        return found


ViewNode.model_rebuild()
