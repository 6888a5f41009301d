# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Impact analysis for changing or deprecating an artifact.

Dependents are found by breadth-first traversal of incoming references:
depth 1 holds artifacts that reference the target directly, depth k+1 holds
artifacts referencing a depth-k artifact. A visited set seeded with the
target guarantees termination on cyclic graphs.

Risk score (capped at 100):
    sum over dependents of (depth_weight + criticality) + max_depth * 2
    depth_weight = 10 for direct dependents, 5 for transitive ones
    criticality  = type weight * status weight (0 if the dependent fails to load)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from decision_links.link_service import LinkService
from decision_links.models import Artifact, ArtifactStatus, ArtifactType
from decision_links.storage import ArtifactStore

logger = logging.getLogger(__name__)

MAX_RISK_SCORE = 100
DIRECT_DEPENDENT_WEIGHT = 10
TRANSITIVE_DEPENDENT_WEIGHT = 5
DEPTH_PENALTY = 2

TYPE_CRITICALITY: Dict[str, int] = {
    ArtifactType.RFC: 3,  # high-level decisions
    ArtifactType.ADR: 2,
    ArtifactType.DECOMPOSITION: 1,  # implementation detail
}
DEFAULT_TYPE_CRITICALITY = 1

STATUS_CRITICALITY: Dict[str, int] = {
    ArtifactStatus.APPROVED: 3,
    ArtifactStatus.ACCEPTED: 3,
    ArtifactStatus.IMPLEMENTED: 3,
    ArtifactStatus.REVIEW: 2,
    ArtifactStatus.PROPOSED: 2,
    ArtifactStatus.DRAFT: 1,
    ArtifactStatus.PENDING: 1,
    ArtifactStatus.DEPRECATED: 0,
    ArtifactStatus.SUPERSEDED: 0,
    ArtifactStatus.REJECTED: 0,
}
DEFAULT_STATUS_CRITICALITY = 1

HIGH_PRIORITY_CRITICALITY = 6
MEDIUM_PRIORITY_CRITICALITY = 3


class TaskPriority:
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class DependentInfo:
    """A dependent found during traversal."""

    id: str
    depth: int
    artifact: Optional[Artifact] = None


@dataclass
class ImpactReport:
    artifact_id: str
    direct_dependents: List[str] = field(default_factory=list)
    transitive_dependents: List[str] = field(default_factory=list)
    risk_score: int = 0
    max_depth: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "artifactId": self.artifact_id,
            "directDependents": list(self.direct_dependents),
            "transitiveDependents": list(self.transitive_dependents),
            "riskScore": self.risk_score,
            "maxDepth": self.max_depth,
        }


@dataclass
class ImpactMigrationTask:
    artifact_id: str
    action: str
    priority: str  # TaskPriority value

    def to_dict(self) -> Dict[str, Any]:
        return {"artifactId": self.artifact_id, "action": self.action, "priority": self.priority}


@dataclass
class ImpactMigrationChecklist:
    artifact_id: str
    tasks: List[ImpactMigrationTask] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"artifactId": self.artifact_id, "tasks": [task.to_dict() for task in self.tasks]}


def artifact_criticality(artifact: Optional[Artifact]) -> int:
    """Type weight times status weight; 0 for an artifact that failed to load."""
    if artifact is None:
        return 0
    type_weight = TYPE_CRITICALITY.get(artifact.type, DEFAULT_TYPE_CRITICALITY)
    status_weight = STATUS_CRITICALITY.get(artifact.status, DEFAULT_STATUS_CRITICALITY)
    return type_weight * status_weight


def priority_from_criticality(criticality: int) -> str:
    if criticality >= HIGH_PRIORITY_CRITICALITY:
        return TaskPriority.HIGH
    if criticality >= MEDIUM_PRIORITY_CRITICALITY:
        return TaskPriority.MEDIUM
    return TaskPriority.LOW


def risk_score_from_dependents(dependents: List[DependentInfo]) -> int:
    """Compute the bounded risk score for a traversal result."""
    if not dependents:
        return 0

    score = 0
    max_depth = 0
    for dep in dependents:
        score += DIRECT_DEPENDENT_WEIGHT if dep.depth == 1 else TRANSITIVE_DEPENDENT_WEIGHT
        score += artifact_criticality(dep.artifact)
        max_depth = max(max_depth, dep.depth)

    score += max_depth * DEPTH_PENALTY
    return min(MAX_RISK_SCORE, score)


class ImpactAnalysisService:
    """Computes dependents, risk scores and deprecation checklists.

    Unknown artifacts and artifacts without dependents yield zeroed results.
    """

    def __init__(self, store: ArtifactStore, link_service: Optional[LinkService] = None) -> None:
        self.store = store
        self.link_service = link_service or LinkService(store)

    def traverse_dependents(self, artifact_id: str) -> List[DependentInfo]:
        """Find direct and transitive dependents of an artifact.

        Returns:
            Dependents in breadth-first discovery order, each with its depth
            and loaded artifact (None if it could not be loaded).
        """
        visited = {artifact_id}
        queue: List[DependentInfo] = []

        for link in self.link_service.get_links(artifact_id).incoming:
            if link.source_id not in visited:
                visited.add(link.source_id)
                queue.append(DependentInfo(id=link.source_id, depth=1))

        dependents: List[DependentInfo] = []
        while queue:
            current = queue.pop(0)
            current.artifact = self.store.load(current.id)
            dependents.append(current)

            for link in self.link_service.get_links(current.id).incoming:
                if link.source_id not in visited:
                    visited.add(link.source_id)
                    queue.append(DependentInfo(id=link.source_id, depth=current.depth + 1))

        logger.debug(f"Found {len(dependents)} dependents of {artifact_id}")
        return dependents

    def analyze_impact(self, artifact_id: str) -> ImpactReport:
        """Analyze the impact of changing or deprecating an artifact.

        Args:
            artifact_id: The artifact ID to analyze.

        Returns:
            ImpactReport with direct and transitive dependents, risk score and
            the deepest dependency level reached.
        """
        dependents = self.traverse_dependents(artifact_id)

        report = ImpactReport(artifact_id=artifact_id)
        for dep in dependents:
            if dep.depth == 1:
                report.direct_dependents.append(dep.id)
            else:
                report.transitive_dependents.append(dep.id)
            report.max_depth = max(report.max_depth, dep.depth)

        report.risk_score = risk_score_from_dependents(dependents)
        logger.info(
            f"Impact of {artifact_id}: {len(report.direct_dependents)} direct, "
            f"{len(report.transitive_dependents)} transitive, risk {report.risk_score}"
        )
        return report

    def calculate_risk_score(self, artifact_id: str) -> int:
        """Calculate the 0-100 risk score for deprecating an artifact."""
        return risk_score_from_dependents(self.traverse_dependents(artifact_id))

    def generate_deprecation_checklist(self, artifact_id: str) -> ImpactMigrationChecklist:
        """Generate migration tasks for every dependent, most critical first.

        Ties keep breadth-first discovery order.
        """
        dependents = self.traverse_dependents(artifact_id)
        ranked = sorted(dependents, key=lambda dep: artifact_criticality(dep.artifact), reverse=True)

        checklist = ImpactMigrationChecklist(artifact_id=artifact_id)
        for dep in ranked:
            criticality = artifact_criticality(dep.artifact)
            if dep.depth == 1:
                action = f"Update {dep.id} to remove direct dependency on {artifact_id}"
            else:
                action = (
                    f"Review {dep.id} for transitive dependency on {artifact_id} "
                    f"(depth: {dep.depth})"
                )
            checklist.tasks.append(
                ImpactMigrationTask(
                    artifact_id=dep.id,
                    action=action,
                    priority=priority_from_criticality(criticality),
                )
            )

        return checklist
