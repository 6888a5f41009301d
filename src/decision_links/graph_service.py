# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Graph builder, renderer and cycle detector for artifact relationships.

The graph is rebuilt from the artifact store on every call:
- Nodes: all artifacts, optionally narrowed by type and by reachability
  from a root artifact (edges treated as undirected for reachability)
- Edges: each node's outgoing references whose target is also a node

Output formats:
- mermaid: flowchart with a class per artifact type
- dot: Graphviz digraph colored by type and styled by status

Cycle detection runs on the directed reference graph. Because every link
installs an inverse reference, each linked pair forms a 2-node cycle; those
are reported with "warning" severity rather than suppressed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set

from decision_links.errors import ValidationError
from decision_links.link_service import LinkService
from decision_links.models import Artifact, ArtifactStatus, ArtifactType
from decision_links.storage import ArtifactStore

logger = logging.getLogger(__name__)


class GraphFormat:
    """Supported graph output formats."""

    MERMAID = "mermaid"
    DOT = "dot"

    ALL = (MERMAID, DOT)


GRAPH_DIRECTIONS = ("TB", "BT", "LR", "RL")

# Cycles with at most this many nodes are "warning", longer ones "critical"
MAX_WARNING_CYCLE_LENGTH = 3

DOT_TYPE_COLORS: Dict[str, str] = {
    ArtifactType.RFC: "blue",
    ArtifactType.ADR: "green",
    ArtifactType.DECOMPOSITION: "orange",
}

DOT_STATUS_STYLES: Dict[str, str] = {
    ArtifactStatus.DRAFT: "style=dashed",
    ArtifactStatus.PROPOSED: "style=dashed",
    ArtifactStatus.REVIEW: "style=dashed",
    ArtifactStatus.DEPRECATED: "style=filled, fillcolor=gray",
    ArtifactStatus.SUPERSEDED: "style=filled, fillcolor=gray",
    ArtifactStatus.REJECTED: "style=filled, fillcolor=gray",
}
DOT_DEFAULT_STYLE = "style=solid"

MERMAID_CLASS_DEFS = [
    "classDef rfc fill:#3498db,stroke:#2980b9,color:#fff",
    "classDef adr fill:#27ae60,stroke:#229954,color:#fff",
    "classDef decomposition fill:#e67e22,stroke:#d35400,color:#fff",
    "classDef draft stroke-dasharray: 5 5",
    "classDef proposed stroke-dasharray: 5 5",
    "classDef deprecated fill:#95a5a6,stroke:#7f8c8d",
    "classDef superseded fill:#95a5a6,stroke:#7f8c8d",
    "classDef rejected fill:#95a5a6,stroke:#7f8c8d",
]

# Statuses that get an extra Mermaid class on top of the type class
MERMAID_STATUS_CLASSES = (
    ArtifactStatus.DRAFT,
    ArtifactStatus.PROPOSED,
    ArtifactStatus.DEPRECATED,
    ArtifactStatus.SUPERSEDED,
    ArtifactStatus.REJECTED,
)


@dataclass
class GraphOptions:
    """Options for generate_graph()."""

    format: str = GraphFormat.MERMAID
    root_id: Optional[str] = None
    include_types: Optional[Sequence[str]] = None


@dataclass
class GraphEdge:
    source_id: str
    target_id: str
    type: str


@dataclass
class CircularDependency:
    """A cycle in the directed reference graph."""

    cycle: List[str] = field(default_factory=list)
    severity: str = "warning"  # "warning" or "critical"

    def to_dict(self) -> Dict[str, Any]:
        return {"cycle": list(self.cycle), "severity": self.severity}


def sanitize_node_id(artifact_id: str) -> str:
    """Make an artifact ID usable as a graph node identifier."""
    return artifact_id.replace("-", "_")


def escape_mermaid_text(text: str) -> str:
    return text.replace('"', "'").replace("[", "(").replace("]", ")").replace("\n", " ")


def escape_dot_text(text: str) -> str:
    # Backslashes first so the ones added below are not doubled
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def cycle_severity(cycle: Sequence[str]) -> str:
    """Classify a cycle by length."""
    return "warning" if len(cycle) <= MAX_WARNING_CYCLE_LENGTH else "critical"


class GraphService:
    """Builds, renders and analyzes the artifact relationship graph.

    Reads link data only; never mutates artifacts.
    """

    def __init__(
        self,
        store: ArtifactStore,
        link_service: Optional[LinkService] = None,
        direction: str = "TB",
    ) -> None:
        """Initialize the graph service.

        Args:
            store: Artifact store to read from.
            link_service: Link reader. If None, one is created over the same store.
            direction: Layout direction for rendered graphs (TB, BT, LR, RL).

        Raises:
            ValidationError: If direction is not a known layout direction.
        """
        if direction not in GRAPH_DIRECTIONS:
            raise ValidationError(
                f"Invalid graph direction '{direction}'. "
                f"Valid directions: {', '.join(GRAPH_DIRECTIONS)}",
                field="direction",
            )
        self.store = store
        self.link_service = link_service or LinkService(store)
        self.direction = direction

    def generate_graph(self, options: Optional[GraphOptions] = None) -> str:
        """Render the artifact graph.

        With a root_id, only the root and artifacts reachable from it through
        incoming or outgoing references are rendered; nothing else appears in
        the output.

        Args:
            options: Format, optional root and optional type filter.

        Returns:
            Graph text in the requested format.

        Raises:
            ValidationError: If the format is not supported.
        """
        options = options or GraphOptions()
        if options.format not in GraphFormat.ALL:
            raise ValidationError(
                f"Invalid graph format '{options.format}'. "
                f"Valid formats: {', '.join(GraphFormat.ALL)}",
                field="format",
            )

        artifacts = self.store.list()

        if options.include_types:
            artifacts = [a for a in artifacts if a.type in options.include_types]

        if options.root_id is not None:
            reachable = set(self.get_connected_artifacts(options.root_id))
            reachable.add(options.root_id)
            artifacts = [a for a in artifacts if a.id in reachable]

        node_ids = {a.id for a in artifacts}
        edges = self._build_edges(artifacts, node_ids)

        logger.debug(
            f"Rendering {options.format} graph: {len(artifacts)} nodes, {len(edges)} edges"
        )

        if options.format == GraphFormat.MERMAID:
            return self._render_mermaid(artifacts, edges)
        return self._render_dot(artifacts, edges)

    def _build_edges(self, artifacts: List[Artifact], node_ids: Set[str]) -> List[GraphEdge]:
        edges: List[GraphEdge] = []
        seen: Set[str] = set()
        for artifact in artifacts:
            for ref in artifact.references:
                if ref.target_id not in node_ids:
                    continue
                key = f"{artifact.id}->{ref.target_id}"
                if key in seen:
                    continue
                seen.add(key)
                edges.append(GraphEdge(artifact.id, ref.target_id, ref.reference_type))
        return edges

    def _render_mermaid(self, artifacts: List[Artifact], edges: List[GraphEdge]) -> str:
        lines = [f"graph {self.direction}", "", "%% Style definitions"]
        lines.extend(MERMAID_CLASS_DEFS)
        lines.append("")

        lines.append("%% Nodes")
        for artifact in artifacts:
            node_id = sanitize_node_id(artifact.id)
            lines.append(f'{node_id}["{artifact.id}: {escape_mermaid_text(artifact.title)}"]')
        lines.append("")

        if edges:
            lines.append("%% Edges")
            for edge in edges:
                source = sanitize_node_id(edge.source_id)
                target = sanitize_node_id(edge.target_id)
                lines.append(f"{source} --> {target} : {edge.type}")
            lines.append("")

        lines.append("%% Apply styles")
        for artifact in artifacts:
            node_id = sanitize_node_id(artifact.id)
            lines.append(f"class {node_id} {artifact.type}")
            if artifact.status in MERMAID_STATUS_CLASSES:
                lines.append(f"class {node_id} {artifact.status}")

        return "\n".join(lines)

    def _render_dot(self, artifacts: List[Artifact], edges: List[GraphEdge]) -> str:
        lines = ["digraph G {", f"  rankdir={self.direction};", "  node [shape=box];", ""]

        for artifact in artifacts:
            node_id = sanitize_node_id(artifact.id)
            color = DOT_TYPE_COLORS.get(artifact.type, "black")
            style = DOT_STATUS_STYLES.get(artifact.status, DOT_DEFAULT_STYLE)
            label = f"{artifact.id}\\n{escape_dot_text(artifact.title)}"
            lines.append(f'  {node_id} [label="{label}", color={color}, {style}];')
        lines.append("")

        for edge in edges:
            source = sanitize_node_id(edge.source_id)
            target = sanitize_node_id(edge.target_id)
            lines.append(f'  {source} -> {target} [label="{edge.type}"];')

        lines.append("}")
        return "\n".join(lines)

    def get_connected_artifacts(self, artifact_id: str) -> List[str]:
        """Get every artifact reachable from artifact_id in either direction.

        Performs a breadth-first traversal following both outgoing and
        incoming links, recursively.

        Returns:
            Reachable artifact IDs in discovery order, excluding artifact_id.
        """
        visited: Set[str] = set()
        order: List[str] = []
        queue: List[str] = [artifact_id]

        while queue:
            current = queue.pop(0)
            if current in visited:
                continue
            visited.add(current)
            order.append(current)

            links = self.link_service.get_links(current)
            for link in links.outgoing:
                if link.target_id not in visited:
                    queue.append(link.target_id)
            for link in links.incoming:
                if link.source_id not in visited:
                    queue.append(link.source_id)

        return [node for node in order if node != artifact_id]

    def detect_circular_dependencies(self) -> List[CircularDependency]:
        """Find cycles in the directed reference graph.

        Depth-first search from every unvisited artifact, tracking the current
        path. A reference to an artifact already on the path closes a cycle,
        reported as the path slice from that artifact to the current one.
        Cycles found from different starting points are not de-duplicated.

        Returns:
            Detected cycles; an empty list means the graph is acyclic.
        """
        artifacts = self.store.list()
        adjacency: Dict[str, List[str]] = {
            a.id: [ref.target_id for ref in a.references] for a in artifacts
        }

        cycles: List[CircularDependency] = []
        visited: Set[str] = set()
        on_path: Set[str] = set()
        path: List[str] = []

        for artifact in artifacts:
            if artifact.id in visited:
                continue

            visited.add(artifact.id)
            on_path.add(artifact.id)
            path.append(artifact.id)
            # Explicit stack of (node, remaining neighbors) instead of recursion
            stack = [(artifact.id, iter(adjacency.get(artifact.id, [])))]

            while stack:
                node, neighbors = stack[-1]
                for neighbor in neighbors:
                    if neighbor not in visited:
                        visited.add(neighbor)
                        on_path.add(neighbor)
                        path.append(neighbor)
                        stack.append((neighbor, iter(adjacency.get(neighbor, []))))
                        break
                    if neighbor in on_path:
                        cycle = path[path.index(neighbor) :]
                        cycles.append(
                            CircularDependency(cycle=cycle, severity=cycle_severity(cycle))
                        )
                else:
                    stack.pop()
                    path.pop()
                    on_path.discard(node)

        if cycles:
            logger.info(f"Detected {len(cycles)} circular dependencies")
        return cycles
