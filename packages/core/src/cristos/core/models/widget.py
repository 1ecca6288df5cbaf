"""Widget -- TagParser 输出的瞬态结构"""

from pydantic import BaseModel, Field


class Widget(BaseModel):
    """从模型输出中一个标签片段提取的结构化事实"""

    type: str = Field(description="规范化类型（小写，去掉数字后缀）")
    tag: str = Field(description="原始标签名（小写）")
    attributes: dict[str, str | bool] = Field(default_factory=dict, description="标签属性")
    inner_text: str = Field(default="", description="标签内文本，已去除嵌套标签")
    ordinal: int | None = Field(default=None, description="标签名中的数字后缀，仅作排序/关联提示")
    source_span: tuple[int, int] = Field(description="在原文中的 [start, end) 位置")

    @property
    def title(self) -> str:
        """用于去重与任务标题的文本：title 属性优先，其次 inner_text"""
        value = self.attributes.get("title")
        if isinstance(value, str) and value.strip():
            return value.strip()
        return self.inner_text.strip()


class ParsedMessage(BaseModel):
    """TagParser.parse 的返回值"""

    prose: str = Field(description="去除标签后的文本")
    widgets: list[Widget] = Field(default_factory=list, description="按出现顺序排列的 Widget")
