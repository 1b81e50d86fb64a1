"""元素访问工具

XML树（保留命名空间）与HTML树（标签名小写、前缀保留在标签名中）
使用同一套访问方式。
"""

from typing import Iterator, Optional, Set, Tuple

from lxml import etree


def is_element(node) -> bool:
    """排除注释、处理指令等非元素节点"""
    return isinstance(getattr(node, "tag", None), str)


def local_name(element: etree._Element) -> str:
    """返回不含命名空间和前缀的标签名（小写）

    `{ns}nonFraction` 和 HTML 解析得到的 `ix:nonfraction` 都返回 `nonfraction`。
    """
    if not is_element(element):
        return ""
    tag = element.tag
    if "}" in tag:
        tag = tag.split("}", 1)[1]
    if ":" in tag:
        tag = tag.split(":", 1)[1]
    return tag.lower()


def tag_prefix(element: etree._Element) -> Optional[str]:
    """返回元素标签的前缀（如 `ix`、`jppfs_cor`）"""
    if not is_element(element):
        return None
    tag = element.tag
    if tag.startswith("{"):
        return element.prefix
    if ":" in tag:
        return tag.split(":", 1)[0]
    return None


def get_attr(element: etree._Element, name: str) -> Optional[str]:
    """大小写不敏感地读取属性（contextRef / contextref / CONTEXTREF）"""
    if not is_element(element):
        return None
    value = element.get(name)
    if value is not None:
        return value
    wanted = name.lower()
    for key, value in element.attrib.items():
        key = key.split("}", 1)[-1]
        if key.lower() == wanted:
            return value
    return None


def element_text(element: etree._Element) -> str:
    """返回元素的全部文本内容，去除首尾空白"""
    if not is_element(element):
        return ""
    return "".join(element.itertext()).strip()


def walk(
    root: etree._Element,
    skip: Optional[Set[str]] = None,
    max_depth: Optional[int] = None,
) -> Iterator[Tuple[etree._Element, int]]:
    """显式栈的先序遍历

    Args:
        root: 起始元素
        skip: 跳过这些本地名称的元素及其子树
        max_depth: 最大深度，None表示只受树本身深度限制

    Yields:
        (元素, 深度)
    """
    stack = [(root, 0)]
    while stack:
        element, depth = stack.pop()
        if not is_element(element):
            continue
        if skip and local_name(element) in skip:
            continue
        yield element, depth
        if max_depth is not None and depth >= max_depth:
            continue
        children = [child for child in element if is_element(child)]
        for child in reversed(children):
            stack.append((child, depth + 1))


def document_root(document) -> etree._Element:
    """接受 _ElementTree 或 _Element，返回根元素"""
    if isinstance(document, etree._ElementTree):
        return document.getroot()
    return document
