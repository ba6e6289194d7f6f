"""
Outline → positioned React Flow graph.

``build_graph`` walks the validated outline depth-first with an explicit
stack, places each node with the radial layout, and emits one hierarchy edge
per child.  Optional cross-reference edges link topics by exact title.

Id scheme::

    root
    topic-{i}
    subtopic-{i}-{j}
    point-{i}-{j}-{k}
    subpoint-{i}-{j}-{k}-{m}
    edge-{parentId}-{childId}       hierarchy edges
    cross-edge-{i}-{j}              topic i → topic j
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from app.models.schemas import (
    Complexity,
    EdgeData,
    EdgeKind,
    EdgeStyle,
    Importance,
    MindMapEdge,
    MindMapGraph,
    MindMapNode,
    NodeData,
    NodeDetails,
    NodeStyle,
    Outline,
    Point,
    Position,
    Subtopic,
    TierName,
    Topic,
    merge_settings,
)
from app.services.layout import node_position

logger = logging.getLogger(__name__)

ROOT_ID = "root"

NODE_STYLES: Dict[TierName, NodeStyle] = {
    TierName.ROOT: NodeStyle(background_color="#4F46E5", border_color="#4338CA", font_size=16),
    TierName.TOPIC: NodeStyle(background_color="#3B82F6", border_color="#2563EB", font_size=14),
    TierName.SUBTOPIC: NodeStyle(background_color="#60A5FA", border_color="#3B82F6", font_size=12),
    TierName.POINT: NodeStyle(background_color="#93C5FD", border_color="#60A5FA", font_size=11),
    TierName.SUBPOINT: NodeStyle(background_color="#BFDBFE", border_color="#93C5FD", font_size=10),
}

# Style of the edge leading *into* a node of the given tier
HIERARCHY_EDGE_STYLES: Dict[TierName, EdgeStyle] = {
    TierName.TOPIC: EdgeStyle(stroke="#6366F1", stroke_width=2),
    TierName.SUBTOPIC: EdgeStyle(stroke="#60A5FA", stroke_width=1.5),
    TierName.POINT: EdgeStyle(stroke="#93C5FD", stroke_width=1),
    TierName.SUBPOINT: EdgeStyle(stroke="#BFDBFE", stroke_width=1),
}

CROSS_EDGE_STYLE = EdgeStyle(stroke="#94A3B8", stroke_dasharray="5 5", opacity=0.6)

_CHILD_TIER = {
    TierName.TOPIC: TierName.SUBTOPIC,
    TierName.SUBTOPIC: TierName.POINT,
    TierName.POINT: TierName.SUBPOINT,
}

OutlineItem = Union[Topic, Subtopic, Point, str]


@dataclass(frozen=True)
class _Frame:
    """One pending node on the worklist."""

    tier: TierName
    parent_id: str
    index: int
    sibling_count: int
    path: Tuple[int, ...]
    item: OutlineItem


def node_id(tier: TierName, path: Tuple[int, ...]) -> str:
    """Stable id for the node at *path* (indices from topic down)."""
    if tier is TierName.ROOT:
        return ROOT_ID
    return "-".join([tier.value, *(str(i) for i in path)])


def build_graph(
    outline: Outline,
    root_label: str,
    settings: Any = None,
) -> MindMapGraph:
    """
    Convert *outline* into a fresh ``MindMapGraph``.

    Args:
        outline:    Validated outline (never mutated).
        root_label: Text of the root node, normally the (merged) prompt.
        settings:   Generation settings; only ``crossTopicRelations`` is read.
    """
    merged = merge_settings(settings)
    nodes: List[MindMapNode] = [_root_node(root_label)]
    edges: List[MindMapEdge] = []

    topic_count = len(outline.topics)
    stack: List[_Frame] = [
        _Frame(TierName.TOPIC, ROOT_ID, i, topic_count, (i,), topic)
        for i, topic in reversed(list(enumerate(outline.topics)))
    ]

    while stack:
        frame = stack.pop()
        current_id = node_id(frame.tier, frame.path)
        nodes.append(
            MindMapNode(
                id=current_id,
                type=frame.tier,
                data=_node_data(frame.tier, frame.item),
                position=node_position(frame.tier.level, frame.index, frame.sibling_count),
                style=NODE_STYLES[frame.tier].model_copy(),
            )
        )
        edges.append(
            MindMapEdge(
                id=f"edge-{frame.parent_id}-{current_id}",
                source=frame.parent_id,
                target=current_id,
                kind=EdgeKind.HIERARCHY,
                type="default",
                style=HIERARCHY_EDGE_STYLES[frame.tier].model_copy(),
            )
        )

        children = _children(frame.item)
        child_tier = _CHILD_TIER.get(frame.tier)
        if child_tier is None or not children:
            continue
        # Pushed in reverse so the first child is processed next (pre-order)
        for index in range(len(children) - 1, -1, -1):
            stack.append(
                _Frame(
                    child_tier,
                    current_id,
                    index,
                    len(children),
                    frame.path + (index,),
                    children[index],
                )
            )

    if merged.cross_topic_relations:
        edges.extend(cross_reference_edges(outline))

    logger.info(
        "build_graph: %d nodes, %d edges from %d topics",
        len(nodes),
        len(edges),
        topic_count,
    )
    return MindMapGraph(nodes=nodes, edges=edges)


def cross_reference_edges(outline: Outline) -> List[MindMapEdge]:
    """
    Edges for every topic cross-reference whose target title exists.

    Titles are matched exactly and the first matching topic wins; references
    to unknown titles are dropped.  Only the first reference between a given
    pair of topics becomes an edge, so edge ids stay unique.
    """
    topics = outline.topics
    if not any(t.cross_references for t in topics):
        return []

    edges: List[MindMapEdge] = []
    linked: Set[Tuple[int, int]] = set()
    for i, topic in enumerate(topics):
        for ref in topic.cross_references:
            j = _find_topic(topics, ref.target_topic)
            if j is None:
                logger.debug(
                    "cross_reference_edges: topic %d references unknown topic %r",
                    i,
                    ref.target_topic,
                )
                continue
            if (i, j) in linked:
                logger.debug(
                    "cross_reference_edges: duplicate reference %d -> %d skipped", i, j
                )
                continue
            linked.add((i, j))
            edges.append(
                MindMapEdge(
                    id=f"cross-edge-{i}-{j}",
                    source=node_id(TierName.TOPIC, (i,)),
                    target=node_id(TierName.TOPIC, (j,)),
                    kind=EdgeKind.CROSS_REFERENCE,
                    type="smoothstep",
                    animated=True,
                    label=ref.relationship,
                    style=CROSS_EDGE_STYLE.model_copy(),
                    data=EdgeData(relationship=ref.relationship, strength=ref.strength),
                )
            )
    return edges


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _find_topic(topics: List[Topic], title: str) -> Optional[int]:
    for index, topic in enumerate(topics):
        if topic.title == title:
            return index
    return None


def _root_node(label: str) -> MindMapNode:
    return MindMapNode(
        id=ROOT_ID,
        type=TierName.ROOT,
        data=NodeData(label=label, description="Root topic", level=0),
        position=Position(x=0.0, y=0.0),
        style=NODE_STYLES[TierName.ROOT].model_copy(),
    )


def _children(item: OutlineItem) -> List[OutlineItem]:
    if isinstance(item, Topic):
        return list(item.subtopics)
    if isinstance(item, Subtopic):
        return list(item.points)
    if isinstance(item, Point):
        return list(item.subpoints)
    return []


def _node_data(tier: TierName, item: OutlineItem) -> NodeData:
    if isinstance(item, str):
        return NodeData(label=item, description="", level=tier.level)

    if isinstance(item, Topic):
        details = NodeDetails(keywords=list(item.keywords), importance=Importance.HIGH)
    elif isinstance(item, Subtopic):
        details = NodeDetails(
            keywords=list(item.keywords),
            importance=item.importance or Importance.MEDIUM,
        )
    else:
        details = NodeDetails(
            keywords=list(item.keywords),
            examples=list(item.examples),
            citations=list(item.citations),
            complexity=item.complexity or Complexity.BASIC,
        )
    return NodeData(
        label=item.title,
        description=item.description or "",
        level=tier.level,
        details=details,
    )
