# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Service layer wiring the graph engine components to one artifact store.

The protocol layer (mcp_server) talks only to ArtifactGraphService. The
service owns no state besides its collaborators: every call is forwarded to
a component that re-reads the store.
"""

import logging
from typing import List, Optional, Sequence

from decision_links.config import Config
from decision_links.graph_service import CircularDependency, GraphOptions, GraphService
from decision_links.impact_service import (
    ImpactAnalysisService,
    ImpactMigrationChecklist,
    ImpactReport,
)
from decision_links.link_service import LinkService
from decision_links.models import Link, LinkDisplay, LinkInfo, LinkResult
from decision_links.storage import ArtifactStore, JsonFileArtifactStore

logger = logging.getLogger(__name__)


class ArtifactGraphService:
    """Facade over link maintenance, graph rendering and impact analysis.

    Dependencies are passed in explicitly; there is no global registry.
    """

    def __init__(self, config: Config, store: Optional[ArtifactStore] = None) -> None:
        """Initialize the service.

        Args:
            config: Configuration object.
            store: Artifact store. If None, a JsonFileArtifactStore rooted at
                config.artifacts_dir is used.
        """
        self.config = config
        self.store = store if store is not None else JsonFileArtifactStore(config.artifacts_dir)
        self.links = LinkService(self.store)
        self.graph = GraphService(self.store, self.links, direction=config.graph_direction)
        self.impact = ImpactAnalysisService(self.store, self.links)
        logger.info(f"ArtifactGraphService initialized with {type(self.store).__name__}")

    # Link maintenance

    def create_link(self, source_id: str, target_id: str, link_type: str) -> LinkResult:
        return self.links.create_link(source_id, target_id, link_type)

    def remove_link(self, source_id: str, target_id: str) -> None:
        self.links.remove_link(source_id, target_id)

    def update_link_type(self, source_id: str, target_id: str, new_type: str) -> Link:
        return self.links.update_link_type(source_id, target_id, new_type)

    def get_links(self, artifact_id: str) -> LinkInfo:
        return self.links.get_links(artifact_id)

    def get_links_for_display(self, artifact_id: str) -> List[LinkDisplay]:
        return self.links.get_links_for_display(artifact_id)

    def batch_link(
        self, source_id: str, target_ids: Sequence[str], link_type: str
    ) -> List[LinkResult]:
        return self.links.batch_link(source_id, target_ids, link_type)

    # Graph

    def generate_graph(
        self,
        graph_format: Optional[str] = None,
        root_id: Optional[str] = None,
        include_types: Optional[Sequence[str]] = None,
    ) -> str:
        """Render the graph, filling unspecified options from configuration."""
        options = GraphOptions(
            format=graph_format or self.config.default_graph_format,
            root_id=root_id,
            include_types=include_types if include_types else self.config.include_types,
        )
        return self.graph.generate_graph(options)

    def detect_circular_dependencies(self) -> List[CircularDependency]:
        return self.graph.detect_circular_dependencies()

    # Impact

    def analyze_impact(self, artifact_id: str) -> ImpactReport:
        return self.impact.analyze_impact(artifact_id)

    def calculate_risk_score(self, artifact_id: str) -> int:
        return self.impact.calculate_risk_score(artifact_id)

    def generate_deprecation_checklist(self, artifact_id: str) -> ImpactMigrationChecklist:
        return self.impact.generate_deprecation_checklist(artifact_id)
