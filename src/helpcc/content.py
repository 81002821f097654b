"""Read-only content provider backed by a YAML document."""
import logging
from pathlib import Path

import yaml

from .menu import MenuNode, MENU, PAGE

logger = logging.getLogger(__name__)

DEFAULT_CONTENT = Path(__file__).with_name('content.yaml')
DEFAULT_PROMPT = "Select an option:"


class ContentError(Exception):
    """Raised when the content tree is missing or malformed."""


class ContentProvider:
    """Maps node ids to menu or page definitions.

    The raw document is a mapping of node id to node definition. A node with
    ``items`` is a menu, a node with ``body`` is a page.
    """

    def __init__(self, nodes):
        if not isinstance(nodes, dict):
            raise ContentError("Content must be a mapping of node id to node")
        self._nodes = nodes

    @classmethod
    def load(cls, path=None):
        path = Path(path) if path else DEFAULT_CONTENT
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ContentError(f"Failed to load content from {path}: {e}") from e
        logger.info(f"Loaded content from {path}")
        return cls(data or {})

    def resolve(self, node_id):
        """Return the definition of ``node_id`` as a plain dict."""
        raw = self._nodes.get(node_id)
        if raw is None:
            raise ContentError(f"Unknown node: {node_id}")
        if not isinstance(raw, dict):
            raise ContentError(f"Node {node_id} must be a mapping")

        title = raw.get('title')
        if not title:
            raise ContentError(f"Node {node_id} has no title")

        has_items = 'items' in raw
        has_body = 'body' in raw
        if has_items == has_body:
            raise ContentError(f"Node {node_id} must define exactly one of 'items' or 'body'")

        if has_body:
            return {
                'kind': PAGE,
                'title': str(title),
                'body': str(raw['body'] or '').rstrip('\n'),
                'height': self._dimension(node_id, raw, 'height'),
                'width': self._dimension(node_id, raw, 'width'),
            }

        return {
            'kind': MENU,
            'title': str(title),
            'prompt': str(raw.get('prompt') or DEFAULT_PROMPT),
            'children': [self._child_entry(node_id, item) for item in raw['items'] or []],
        }

    def _dimension(self, node_id, raw, key):
        value = raw.get(key)
        if value is None:
            return None
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise ContentError(f"Node {node_id}: {key} must be a positive integer")
        return value

    def _child_entry(self, node_id, item):
        if isinstance(item, str):
            child_id, label = item, None
        elif isinstance(item, dict) and item.get('id'):
            child_id, label = str(item['id']), item.get('label')
        else:
            raise ContentError(f"Node {node_id} has an invalid item: {item!r}")

        if child_id not in self._nodes:
            raise ContentError(f"Node {node_id} refers to unknown node {child_id}")
        if label is None:
            child = self._nodes[child_id]
            label = child.get('title', child_id) if isinstance(child, dict) else child_id
        return (str(label), child_id)

    def validate(self, root_id):
        """Resolve every node reachable from ``root_id``.

        Returns the number of nodes checked. Raises ContentError on the first
        malformed node.
        """
        if self.resolve(root_id)['kind'] != MENU:
            raise ContentError(f"Root node {root_id} must be a menu")

        seen = set()
        pending = [root_id]
        while pending:
            node_id = pending.pop()
            if node_id in seen:
                continue
            seen.add(node_id)
            entry = self.resolve(node_id)
            if entry['kind'] == MENU:
                pending.extend(child_id for _, child_id in entry['children'])
        logger.debug(f"Validated {len(seen)} content nodes")
        return len(seen)

    def build_tree(self, root_id):
        """Return the root MenuNode; children are built on first access."""
        return self._make_node(root_id, None, None)

    def _make_node(self, node_id, label, parent):
        entry = self.resolve(node_id)
        if entry['kind'] == MENU:
            return MenuNode(
                node_id, entry['title'], MENU,
                label=label,
                parent=parent,
                loader=self._load_children,
                prompt=entry['prompt'],
            )
        return MenuNode(
            node_id, entry['title'], PAGE,
            label=label,
            parent=parent,
            body=entry['body'],
            height=entry['height'],
            width=entry['width'],
        )

    def _load_children(self, node):
        logger.debug(f"Loading children of {node.id}")
        entry = self.resolve(node.id)
        return [self._make_node(child_id, label, node) for label, child_id in entry['children']]

