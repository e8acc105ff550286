"""
Message content tree scanning.

Message bodies are trees of nodes: ``{"type": "paragraph", "children": [...]}``.
Nodes tagged ``mention`` reference a user. The walk uses an explicit stack so
corrupted or adversarial content cannot exhaust the interpreter stack.
"""
from typing import Any, List, Sequence, Tuple

from .constants import DEFAULT_CONTENT_MAX_DEPTH, MENTION_NODE_TYPE
from .utils import MalformedResponseError


class ContentTooDeepError(MalformedResponseError, ValueError):
    """A content tree nests deeper than the scanner allows."""


def count_tagged_nodes(
    nodes: Sequence[Any],
    tag: str = MENTION_NODE_TYPE,
    max_depth: int = DEFAULT_CONTENT_MAX_DEPTH,
) -> int:
    """
    Count nodes at any depth whose ``type`` equals ``tag``.

    Args:
        nodes: Top-level content nodes. Non-object entries are ignored.
        tag: Node type to count (default: "mention")
        max_depth: Deepest nesting level visited; top-level nodes are depth 1

    Returns:
        Number of matching nodes

    Raises:
        ContentTooDeepError: If a ``children`` array sits deeper than max_depth
    """
    if not isinstance(nodes, list):
        return 0

    count = 0
    stack: List[Tuple[List[Any], int]] = [(nodes, 1)]
    while stack:
        level, depth = stack.pop()
        if depth > max_depth:
            raise ContentTooDeepError(f"Message content nests deeper than {max_depth} levels")
        for node in level:
            if not isinstance(node, dict):
                continue
            if node.get('type') == tag:
                count += 1
            children = node.get('children')
            if isinstance(children, list):
                stack.append((children, depth + 1))
    return count
