"""API 响应解码：把 REST 返回的原始 JSON 转为内容模型，自定义字段在此一次性分类"""
import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from cms_viewer.models.content import (
    ContentItem,
    ContentTypeDescriptor,
    CustomField,
    FeaturedImage,
    FieldKind,
    Term,
)
from cms_viewer.utils.logger import logger

# 原始 JSON 结构与预期不符时解码可能抛出的异常
DECODE_ERRORS = (ValueError, TypeError, AttributeError, KeyError)


def _rendered(value: Any) -> str:
    """读取 {"rendered": "..."} 结构，也兼容直接给字符串"""
    if isinstance(value, dict):
        return str(value.get("rendered") or "")
    if isinstance(value, str):
        return value
    return ""


def _is_protected(value: Any) -> bool:
    return isinstance(value, dict) and bool(value.get("protected"))


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _label(key: str) -> str:
    """field_name -> Field Name"""
    return " ".join(part.capitalize() for part in key.replace("_", " ").split())


def _embedded(raw: Dict[str, Any], relation: str) -> list:
    embedded = raw.get("_embedded")
    if not isinstance(embedded, dict):
        return []
    value = embedded.get(relation)
    return value if isinstance(value, list) else []


def _embedded_terms(raw: Dict[str, Any]) -> Dict[str, Dict[int, str]]:
    """wp:term 是按 taxonomy 分组的二维数组，整理为 {taxonomy: {id: name}}"""
    terms: Dict[str, Dict[int, str]] = {}
    for group in _embedded(raw, "wp:term"):
        if not isinstance(group, list):
            continue
        for term in group:
            if not isinstance(term, dict) or "id" not in term:
                continue
            taxonomy = term.get("taxonomy") or ""
            try:
                terms.setdefault(taxonomy, {})[int(term["id"])] = str(term.get("name") or "")
            except (TypeError, ValueError):
                continue
    return terms


def _decode_terms(values: Any, names: Dict[int, str]) -> List[Term]:
    """categories / tags 可能是 ID 列表，也可能已是 {id, name} 列表"""
    if not isinstance(values, list):
        return []
    result: List[Term] = []
    seen = set()
    for value in values:
        if isinstance(value, dict):
            term_id, name = value.get("id"), value.get("name")
        else:
            term_id, name = value, None
        try:
            term_id = int(term_id)
        except (TypeError, ValueError):
            continue
        if term_id in seen:
            continue
        seen.add(term_id)
        result.append(Term(id=term_id, name=str(name or names.get(term_id) or term_id)))
    return result


def _decode_featured_image(raw: Dict[str, Any], rest_base: str) -> Optional[FeaturedImage]:
    media = _embedded(raw, "wp:featuredmedia")
    if media and isinstance(media[0], dict):
        first = media[0]
        details = first.get("media_details")
        sizes = details.get("sizes") if isinstance(details, dict) else None
        medium = sizes.get("medium") if isinstance(sizes, dict) else None
        url = first.get("source_url") or (medium.get("source_url") if isinstance(medium, dict) else None)
        if url:
            return FeaturedImage(
                url=url,
                alt=first.get("alt_text") or "",
                title=_rendered(first.get("title")),
                caption=_rendered(first.get("caption")),
            )
    # 媒体条目本身就是图片
    if rest_base == "media" and raw.get("source_url"):
        return FeaturedImage(url=raw["source_url"], alt=raw.get("alt_text") or "")
    if raw.get("featured_media_url"):
        return FeaturedImage(url=raw["featured_media_url"])
    return None


def classify_field(key: str, value: Any) -> Optional[CustomField]:
    """
    将一个自定义字段归类为 Text / Link / Media / Date / Location / Unknown。
    空值返回 None。
    """
    if value is None or value == "" or value == [] or value == {}:
        return None
    label = _label(key)

    if isinstance(value, bool):
        return CustomField(key=key, label=label, kind=FieldKind.TEXT, text="Yes" if value else "No")

    if isinstance(value, (int, float)):
        return CustomField(key=key, label=label, kind=FieldKind.TEXT, text=str(value))

    if isinstance(value, str):
        if value.startswith(("http://", "https://")):
            return CustomField(key=key, label=label, kind=FieldKind.LINK, text=value, url=value)
        if "@" in value and " " not in value.strip():
            return CustomField(key=key, label=label, kind=FieldKind.LINK, text=value, url=f"mailto:{value}")
        return CustomField(key=key, label=label, kind=FieldKind.TEXT, text=value)

    if isinstance(value, list):
        first = value[0]
        if isinstance(first, dict):
            shown = first.get("title") or first.get("name") or first.get("label") or first.get("url") or first.get("ID")
            text = str(shown) if shown is not None else json.dumps(first, ensure_ascii=False)
            if len(value) > 1:
                text += f" +{len(value) - 1} more"
            return CustomField(key=key, label=label, kind=FieldKind.TEXT, text=text)
        return CustomField(key=key, label=label, kind=FieldKind.TEXT, text=", ".join(str(v) for v in value))

    if isinstance(value, dict):
        if value.get("lat") not in (None, "") and value.get("lng") not in (None, ""):
            try:
                return CustomField(
                    key=key,
                    label=label,
                    kind=FieldKind.LOCATION,
                    text=value.get("address") or "",
                    lat=float(value["lat"]),
                    lng=float(value["lng"]),
                    address=value.get("address"),
                )
            except (TypeError, ValueError):
                logger.debug(f"位置字段坐标无效: {key}")
        if value.get("url"):
            sizes = value.get("sizes") if isinstance(value.get("sizes"), dict) else {}
            if sizes or value.get("mime_type") or value.get("filename"):
                return CustomField(
                    key=key,
                    label=label,
                    kind=FieldKind.MEDIA,
                    text=value.get("alt") or value.get("filename") or value.get("title") or "",
                    url=value["url"],
                    thumbnail=sizes.get("thumbnail"),
                )
            return CustomField(
                key=key, label=label, kind=FieldKind.LINK, text=value.get("title") or value["url"], url=value["url"]
            )
        if value.get("date"):
            parsed = _parse_datetime(str(value["date"]))
            return CustomField(key=key, label=label, kind=FieldKind.DATE, text=str(value["date"]), date=parsed)

    return CustomField(
        key=key, label=label, kind=FieldKind.UNKNOWN, text=json.dumps(value, ensure_ascii=False, default=str)
    )


def decode_custom_fields(acf: Any) -> List[CustomField]:
    """解析 acf 字段；以 _ 开头的系统字段与空值跳过"""
    if not isinstance(acf, dict):
        return []
    fields = []
    for key, value in acf.items():
        if str(key).startswith("_"):
            continue
        field = classify_field(str(key), value)
        if field is not None:
            fields.append(field)
    return fields


def decode_item(raw: Dict[str, Any], content_type: str, source_id: str = "", rest_base: str = "") -> ContentItem:
    """
    解码单条内容

    Args:
        raw: REST 返回的原始条目
        content_type: 所属内容类型
        source_id: 所属数据源
        rest_base: 内容类型的 REST base（用于识别媒体条目）

    Raises:
        ValueError: 条目缺少有效 id
    """
    if not isinstance(raw, dict):
        raise ValueError(f"条目不是对象: {type(raw).__name__}")
    try:
        item_id = int(raw["id"])
    except (KeyError, TypeError, ValueError):
        raise ValueError("条目缺少有效 id")

    terms = _embedded_terms(raw)
    authors = _embedded(raw, "author")
    author_name = authors[0].get("name") if authors and isinstance(authors[0], dict) else None

    return ContentItem(
        id=item_id,
        content_type=content_type,
        source_id=source_id,
        title=_rendered(raw.get("title")) or _rendered(raw.get("caption")) or "Untitled",
        excerpt=_rendered(raw.get("excerpt")) or _rendered(raw.get("description")),
        content=_rendered(raw.get("content")),
        date=_parse_datetime(raw.get("date")),
        modified=_parse_datetime(raw.get("modified")),
        slug=raw.get("slug") or "",
        status=raw.get("status") or "",
        link=raw.get("link") or "",
        format=raw.get("format") or "",
        template=raw.get("template") or "",
        author_name=author_name,
        categories=_decode_terms(raw.get("categories"), terms.get("category", {})),
        tags=_decode_terms(raw.get("tags"), terms.get("post_tag", {})),
        featured_image=_decode_featured_image(raw, rest_base or content_type),
        sticky=bool(raw.get("sticky")),
        password=bool(raw.get("password")) or _is_protected(raw.get("content")) or _is_protected(raw.get("excerpt")),
        custom_fields=decode_custom_fields(raw.get("acf")),
    )


def decode_items(raws: Iterable[Any], content_type: str, source_id: str = "", rest_base: str = "") -> List[ContentItem]:
    """解码一页条目，单条无效时记录日志并跳过"""
    items = []
    for raw in raws:
        try:
            items.append(decode_item(raw, content_type, source_id, rest_base))
        except DECODE_ERRORS as e:
            logger.warning(f"跳过无效条目 type={content_type}: {e}")
    return items


def decode_content_types(data: Any, excluded: Iterable[str]) -> List[ContentTypeDescriptor]:
    """
    解析 /types 响应：{type_name: {rest_base, name, ...}}。
    排除系统内部类型与没有 REST base 的类型。
    """
    if not isinstance(data, dict):
        raise ValueError("类型列表不是对象")
    excluded = set(excluded)
    result = []
    for name, meta in data.items():
        if not isinstance(meta, dict):
            continue
        rest_base = meta.get("rest_base")
        if name in excluded or not rest_base:
            logger.debug(f"跳过内容类型: {name} (excluded={name in excluded}, rest_base={rest_base!r})")
            continue
        result.append(ContentTypeDescriptor(
            name=name,
            rest_base=rest_base,
            label=meta.get("name") or name,
            description=meta.get("description") or "",
            hierarchical=bool(meta.get("hierarchical")),
            viewable=meta.get("viewable", True) is not False,
        ))
    return result
