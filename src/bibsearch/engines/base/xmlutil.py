"""XML helpers shared by the response normalizers."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Collection, Iterator


def split_tag(tag: str) -> tuple[str | None, str]:
    """``'{ns}local'`` -> ``('ns', 'local')``; un-namespaced tags get ``None``."""
    if tag.startswith("{"):
        ns, _, local = tag[1:].partition("}")
        return ns, local
    return None, tag


def local_name(tag: str) -> str:
    return split_tag(tag)[1]


def strip_namespaces(root: ET.Element) -> ET.Element:
    """Drop namespaces from every tag under *root*, in place."""
    for el in root.iter():
        if isinstance(el.tag, str):
            el.tag = local_name(el.tag)
    return root


def node_text(node: ET.Element | None) -> str | None:
    """All text inside *node* (markup flattened), stripped; None when blank."""
    if node is None:
        return None
    text = "".join(node.itertext()).strip()
    return text or None


def find_text(node: ET.Element, path: str) -> str | None:
    """``node_text`` of the first element matching *path*."""
    return node_text(node.find(path))


def find_all_text(node: ET.Element, path: str) -> list[str]:
    """Non-blank texts of every element matching *path*."""
    return [t for t in (node_text(el) for el in node.findall(path)) if t]


def children_named(
    node: ET.Element,
    name: str,
    namespaces: Collection[str | None] | None = None,
) -> Iterator[ET.Element]:
    """Direct children with local name *name*, optionally limited to *namespaces*."""
    for child in node:
        if not isinstance(child.tag, str):
            continue
        ns, local = split_tag(child.tag)
        if local == name and (namespaces is None or ns in namespaces):
            yield child


def child_text(node: ET.Element, name: str, namespaces: Collection[str | None] | None = None) -> str | None:
    """Text of the first non-blank direct child named *name*."""
    for child in children_named(node, name, namespaces):
        text = node_text(child)
        if text:
            return text
    return None
