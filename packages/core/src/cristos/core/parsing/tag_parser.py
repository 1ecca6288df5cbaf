"""TagParser -- 宽松的伪 HTML 标签解析器

把模型输出中的自定义标签转换为有序的 Widget 列表，并返回去除标签后的正文。
不理解任何项目语义；上游生成器输出不可控，因此：

- 已知标签支持成对 `<tag a=1>inner</tag>` 与自闭合 `<tag a=1 />` 两种形态，
  名称大小写不敏感，编号变体（task3）携带 ordinal
- 未闭合的已知开标签取到行尾，孤立的已知闭标签会被清除
- 容器标签（tasks / team_members）透明：自身标记被去除，内部标签照常解析
- 没有任何已知标签命中时，兜底匹配任意 `<x>..</x>` / `<x/>`
- 一个 widget 都没有时原文原样返回
- 永不抛出异常
"""

import re

import structlog

from ..models.widget import ParsedMessage, Widget

log = structlog.get_logger()

# 带数字后缀的标签族（task1, subtask2, team_member3）
NUMBERED_TAGS: tuple[str, ...] = ("task", "subtask", "team_member")

KNOWN_TAGS: tuple[str, ...] = (
    "task",
    "subtask",
    "team_member",
    "project_name",
    "projectname",
    "project_description",
    "progress_indicator",
    "date_picker",
    "priority_selector",
    "project_deadline",
    "progress",
    "priority",
    "category",
    "status",
    "edc_date",
    "fud_date",
    "project_owner",
    "project_lead",
    "update_task",
    "update_subtask",
    "update_team_member",
)

# 透明容器标签
CONTAINER_TAGS: tuple[str, ...] = ("tasks", "team_members", "optional_fields")


def _names_pattern() -> str:
    numbered = "|".join(NUMBERED_TAGS)
    plain = "|".join(sorted(KNOWN_TAGS, key=len, reverse=True))
    return rf"(?:{numbered})[0-9]+|{plain}"


_NAMES = _names_pattern()

# 属性区：引号内允许出现 '>'
_ATTRS = r"""(?:"[^"]*"|'[^']*'|[^<>"'])"""

# 成对 / 自闭合的已知标签
_KNOWN_TAG_RE = re.compile(
    rf"<(?P<tag>{_NAMES})(?=[\s/>])(?P<attrs>{_ATTRS}*?)"
    r"(?:/\s*>|(?<!/)>(?P<inner>.*?)</(?P=tag)\s*>)",
    re.IGNORECASE | re.DOTALL,
)

# 兜底：任意标签
_ANY_TAG_RE = re.compile(
    rf"<(?P<tag>[A-Za-z][\w\-]*)(?=[\s/>])(?P<attrs>{_ATTRS}*?)"
    r"(?:/\s*>|(?<!/)>(?P<inner>.*?)</(?P=tag)\s*>)",
    re.IGNORECASE | re.DOTALL,
)

# 未闭合的已知开标签，内容取到行尾或下一个 '<'
_UNTERMINATED_RE = re.compile(
    rf"<(?P<tag>{_NAMES})(?=[\s>])(?P<attrs>{_ATTRS}*)>(?P<inner>[^<\n]*)",
    re.IGNORECASE,
)

_ORPHAN_CLOSER_RE = re.compile(rf"</(?:{_NAMES})\s*>", re.IGNORECASE)

_CONTAINER_RE = re.compile(
    rf"</?(?:{'|'.join(CONTAINER_TAGS)})\b[^<>]*>",
    re.IGNORECASE,
)

_ATTR_RE = re.compile(
    r"(?P<key>[A-Za-z_][\w\-:.]*)"
    r"""(?:\s*=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[^\s"'=<>`]+)))?"""
)

# 标签体内的伪属性：<role=Sponsor>、<member_id=@u1>
_INLINE_ATTR_RE = re.compile(r"<(?P<key>[A-Za-z_][\w\-]*)\s*=\s*(?P<value>[^<>]*)>")
_SIMPLE_TAG_RE = re.compile(r"</?[A-Za-z_][\w\-]*\s*/?>")
_NUMBERED_RE = re.compile(rf"(?P<base>{'|'.join(NUMBERED_TAGS)})[0-9]+")
_DIGITS_RE = re.compile(r"[0-9]+")
_BULLET_ONLY_RE = re.compile(r"^[\s•·\-\*]*$")
_WS_RE = re.compile(r"\s+")


def _parse_attributes(raw: str) -> dict[str, str | bool]:
    """解析属性串；无法识别的片段直接跳过"""
    attributes: dict[str, str | bool] = {}
    for m in _ATTR_RE.finditer(raw):
        key = m.group("key").lower()
        for group in ("dq", "sq", "bare"):
            value = m.group(group)
            if value is not None:
                attributes[key] = value
                break
        else:
            attributes.setdefault(key, True)
    return attributes


def _remove_spans(text: str, spans: list[tuple[int, int]]) -> str:
    """删除若干（可能重叠的）区间"""
    if not spans:
        return text
    merged: list[list[int]] = []
    for start, end in sorted(spans):
        if merged and start <= merged[-1][1]:
            merged[-1][1] = max(merged[-1][1], end)
        else:
            merged.append([start, end])
    pieces: list[str] = []
    cursor = 0
    for start, end in merged:
        pieces.append(text[cursor:start])
        cursor = end
    pieces.append(text[cursor:])
    return "".join(pieces)


def _mask(text: str, spans: list[tuple[int, int]]) -> str:
    """用空格覆盖区间，保持偏移不变"""
    chars = list(text)
    for start, end in spans:
        for i in range(start, end):
            chars[i] = " "
    return "".join(chars)


def _clean_inner(inner: str, attributes: dict[str, str | bool]) -> str:
    """抽取标签体内的伪属性，去掉残留标记并折叠空白"""
    for m in _INLINE_ATTR_RE.finditer(inner):
        attributes.setdefault(m.group("key").lower(), m.group("value").strip())
    inner = _INLINE_ATTR_RE.sub(" ", inner)
    inner = _SIMPLE_TAG_RE.sub(" ", inner)
    return _WS_RE.sub(" ", inner).strip()


def _tidy_prose(text: str) -> str:
    """去掉只剩项目符号的行，折叠空白"""
    lines = [line for line in text.splitlines() if not _BULLET_ONLY_RE.match(line)]
    return _WS_RE.sub(" ", " ".join(lines)).strip()


class TagParser:
    """伪 HTML 标签解析器

    解析结果按出现位置排序；相同类型且内容（或 title 属性）相同的 widget
    只保留第一次出现。
    """

    def parse(self, text: str) -> ParsedMessage:
        """解析文本

        Args:
            text: 模型输出原文

        Returns:
            ParsedMessage（prose + widgets）
        """
        if not text or "<" not in text:
            return ParsedMessage(prose=text or "", widgets=[])
        try:
            return self._parse(text)
        except Exception as e:
            # 解析错误就地吸收，原文交还调用方
            log.warning("tag_parse_failed", error_type=type(e).__name__, error=str(e))
            return ParsedMessage(prose=text, widgets=[])

    def _parse(self, text: str) -> ParsedMessage:
        widgets: list[Widget] = []
        removed: list[tuple[int, int]] = []

        # 1. 容器标签只去标记
        container_spans = [(m.start(), m.end()) for m in _CONTAINER_RE.finditer(text)]
        removed.extend(container_spans)
        working = _mask(text, container_spans)

        # 2. 已知标签（含嵌套）
        known_spans = self._scan(working, 0, _KNOWN_TAG_RE, widgets)
        removed.extend(known_spans)
        working = _mask(working, known_spans)

        # 3. 未闭合的已知开标签
        for m in _UNTERMINATED_RE.finditer(working):
            widgets.append(
                self._build_widget(
                    m.group("tag"), m.group("attrs"), m.group("inner"), (m.start(), m.end())
                )
            )
            removed.append((m.start(), m.end()))
        working = _mask(working, removed)

        # 4. 兜底：一个已知标签都没命中时接受任意标签
        if not widgets:
            fallback_spans = self._scan(working, 0, _ANY_TAG_RE, widgets)
            removed.extend(fallback_spans)
            working = _mask(working, fallback_spans)

        if not widgets:
            return ParsedMessage(prose=text, widgets=[])

        # 5. 孤立闭标签
        removed.extend((m.start(), m.end()) for m in _ORPHAN_CLOSER_RE.finditer(working))

        widgets.sort(key=lambda w: w.source_span[0])
        prose = _tidy_prose(_remove_spans(text, removed))
        return ParsedMessage(prose=prose, widgets=self._dedupe(widgets))

    def _scan(
        self,
        text: str,
        base: int,
        pattern: re.Pattern[str],
        widgets: list[Widget],
    ) -> list[tuple[int, int]]:
        """扫描 text 中的成对/自闭合标签，返回相对 text 的区间

        成对标签的内容会被递归扫描，嵌套标签成为独立 widget 并从外层内容中移除。
        """
        spans: list[tuple[int, int]] = []
        for m in pattern.finditer(text):
            inner = m.group("inner")
            if inner is None:
                inner = ""
            else:
                nested = self._scan(inner, base + m.start("inner"), pattern, widgets)
                inner = _remove_spans(inner, nested)
            widgets.append(
                self._build_widget(
                    m.group("tag"),
                    m.group("attrs"),
                    inner,
                    (base + m.start(), base + m.end()),
                )
            )
            spans.append((m.start(), m.end()))
        return spans

    @staticmethod
    def _build_widget(
        tag: str,
        raw_attrs: str | None,
        inner: str,
        span: tuple[int, int],
    ) -> Widget:
        tag = tag.lower()
        attributes = _parse_attributes(raw_attrs or "")
        inner_text = _clean_inner(inner, attributes)
        digits = _DIGITS_RE.search(tag)
        numbered = _NUMBERED_RE.fullmatch(tag)
        return Widget(
            type=numbered.group("base") if numbered else tag,
            tag=tag,
            attributes=attributes,
            inner_text=inner_text,
            ordinal=int(digits.group()) if digits else None,
            source_span=span,
        )

    @staticmethod
    def _dedupe(widgets: list[Widget]) -> list[Widget]:
        """同类型且内容相同（或 title 属性相同）的 widget 只保留第一个"""
        seen: set[tuple[str, ...]] = set()
        result: list[Widget] = []
        for widget in widgets:
            if widget.inner_text:
                content_key = ("content", widget.type, widget.inner_text)
            else:
                attrs = sorted((k, str(v)) for k, v in widget.attributes.items())
                content_key = ("attrs", widget.type, repr(attrs))
            keys = [content_key]
            title = widget.attributes.get("title")
            if isinstance(title, str) and title.strip():
                keys.append(("title", widget.type, title.strip().lower()))
            if any(key in seen for key in keys):
                continue
            seen.update(keys)
            result.append(widget)
        return result
