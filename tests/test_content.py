"""
Tests for lib/content.py mention counting.
"""
import os
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lib.content import ContentTooDeepError, count_tagged_nodes
from lib.utils import MalformedResponseError


def mention(*children):
    node = {"type": "mention", "user": {"id": "u1"}}
    if children:
        node["children"] = list(children)
    return node


def paragraph(*children):
    return {"type": "p", "children": list(children)}


def chain(depth):
    """A single mention node with depth-1 nested single-child mentions below it."""
    node = mention()
    for _ in range(depth - 1):
        node = mention(node)
    return [node]


class TestCountTaggedNodes:
    """Tests for count_tagged_nodes."""

    def test_empty(self):
        assert count_tagged_nodes([]) == 0

    def test_flat_mentions(self):
        assert count_tagged_nodes([mention() for _ in range(5)]) == 5

    def test_chain_of_depth(self):
        assert count_tagged_nodes(chain(7)) == 7

    def test_non_mention_parents_contribute_descendants_only(self):
        content = [
            paragraph({"text": "hi "}, mention(), paragraph(mention(), {"text": "!"})),
            paragraph({"text": "no mentions here"}),
        ]
        assert count_tagged_nodes(content) == 2

    def test_non_object_entries_ignored(self):
        content = ["text", 3, None, ["nested", "list"], mention()]
        assert count_tagged_nodes(content) == 1

    def test_children_must_be_a_list(self):
        content = [{"type": "p", "children": {"type": "mention"}}]
        assert count_tagged_nodes(content) == 0

    def test_non_list_input(self):
        assert count_tagged_nodes(None) == 0
        assert count_tagged_nodes("mention") == 0

    def test_custom_tag(self):
        content = [{"type": "link"}, paragraph({"type": "link"}, mention())]
        assert count_tagged_nodes(content, tag="link") == 2


class TestDepthLimit:
    """Deep or cyclic content fails instead of looping forever."""

    def test_too_deep_raises(self):
        with pytest.raises(ContentTooDeepError):
            count_tagged_nodes(chain(20), max_depth=10)

    def test_depth_at_limit_is_fine(self):
        assert count_tagged_nodes(chain(10), max_depth=10) == 10

    def test_cyclic_input_terminates(self):
        node = {"type": "mention", "children": []}
        node["children"].append(node)

        with pytest.raises(ContentTooDeepError):
            count_tagged_nodes([node], max_depth=50)

    def test_too_deep_is_a_malformed_response(self):
        with pytest.raises(MalformedResponseError):
            count_tagged_nodes(chain(5), max_depth=2)
