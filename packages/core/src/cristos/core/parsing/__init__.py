"""模型输出解析 -- TagParser（语法）+ WidgetInterpreter（语义）"""

from .interpreter import WidgetInterpreter
from .tag_parser import CONTAINER_TAGS, KNOWN_TAGS, NUMBERED_TAGS, TagParser

__all__ = [
    "TagParser",
    "WidgetInterpreter",
    "KNOWN_TAGS",
    "NUMBERED_TAGS",
    "CONTAINER_TAGS",
]
