# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Storage abstraction for decision-record artifacts.

The graph engine treats the artifact store as its sole source of truth and
re-reads it on every operation; nothing here caches a graph.

Components:
- ArtifactStore: Abstract interface for storage backends
- ArtifactFilter: Optional narrowing for ArtifactStore.list()
- InMemoryArtifactStore: Dict-backed store (tests, embedding, single session)
- JsonFileArtifactStore: One JSON file per artifact in a directory
"""

import copy
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from decision_links.errors import StorageError, ValidationError
from decision_links.models import Artifact

logger = logging.getLogger(__name__)


@dataclass
class ArtifactFilter:
    """Criteria for ArtifactStore.list(). Empty criteria match everything."""

    types: Optional[Sequence[str]] = None
    statuses: Optional[Sequence[str]] = None
    tags: Optional[Sequence[str]] = None  # artifact must carry at least one

    def matches(self, artifact: Artifact) -> bool:
        if self.types and artifact.type not in self.types:
            return False
        if self.statuses and artifact.status not in self.statuses:
            return False
        if self.tags and not any(tag in artifact.tags for tag in self.tags):
            return False
        return True


class ArtifactStore(ABC):
    """Abstract storage interface for artifacts.

    Enables swapping storage backend without changing engine logic. Services
    receive a store through their constructor; there is no global instance.

    Contract:
    - load() returns a snapshot; mutating it does not touch the store until save()
    - list() returns artifacts in a stable order
    - Backend exceptions propagate to the caller unchanged
    """

    @abstractmethod
    def load(self, artifact_id: str) -> Optional[Artifact]:
        """Load an artifact by ID.

        Returns:
            The artifact, or None if it does not exist.
        """
        pass

    @abstractmethod
    def save(self, artifact: Artifact) -> None:
        """Create or replace an artifact."""
        pass

    @abstractmethod
    def list(self, artifact_filter: Optional[ArtifactFilter] = None) -> List[Artifact]:
        """List artifacts, optionally narrowed by a filter."""
        pass

    @abstractmethod
    def exists(self, artifact_id: str) -> bool:
        """Check whether an artifact exists."""
        pass


class InMemoryArtifactStore(ArtifactStore):
    """In-memory storage implementation.

    Limitations:
    - NOT thread-safe: Designed for single-threaded use only
    - No persistence across sessions

    Records are deep-copied on the way in and out so that callers always work
    on snapshots, matching the read-modify-write behavior of on-disk stores.
    """

    def __init__(self, artifacts: Optional[Sequence[Artifact]] = None) -> None:
        # Insertion-ordered: list() returns artifacts in the order first saved
        self._artifacts: Dict[str, Artifact] = {}
        for artifact in artifacts or []:
            self.save(artifact)

    def load(self, artifact_id: str) -> Optional[Artifact]:
        artifact = self._artifacts.get(artifact_id)
        if artifact is None:
            return None
        return copy.deepcopy(artifact)

    def save(self, artifact: Artifact) -> None:
        self._artifacts[artifact.id] = copy.deepcopy(artifact)

    def list(self, artifact_filter: Optional[ArtifactFilter] = None) -> List[Artifact]:
        return [
            copy.deepcopy(artifact)
            for artifact in self._artifacts.values()
            if artifact_filter is None or artifact_filter.matches(artifact)
        ]

    def exists(self, artifact_id: str) -> bool:
        return artifact_id in self._artifacts

    def clear(self) -> None:
        """Remove every artifact. Used for testing."""
        self._artifacts.clear()


class JsonFileArtifactStore(ArtifactStore):
    """Directory-backed store holding one ``<ID>.json`` file per artifact.

    Storage structure:
    artifacts_dir/
      RFC-0001.json
      ADR-0001.json
      ...

    Writes replace the whole file; there is no cross-file transaction, so a
    failure between two saves leaves the first one in place.
    """

    def __init__(self, base_path: Union[str, Path]) -> None:
        self.base_path = Path(base_path)

    def _id_problem(self, artifact_id: str) -> Optional[str]:
        """Describe why artifact_id cannot name a file in base_path, or None."""
        if not artifact_id:
            return "Artifact ID cannot be empty"
        if any(ord(c) < 32 for c in artifact_id):
            return f"Artifact ID contains invalid control characters: {artifact_id!r}"
        if "/" in artifact_id or "\\" in artifact_id or ".." in artifact_id:
            return f"Artifact ID must not contain path components: {artifact_id}"
        return None

    def _path_for(self, artifact_id: str) -> Path:
        problem = self._id_problem(artifact_id)
        if problem is not None:
            raise ValidationError(problem, field="id")
        return self.base_path / f"{artifact_id}.json"

    def _read(self, path: Path) -> Artifact:
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(
                f"Failed to read artifact file {path}: {e}", {"path": str(path)}
            ) from e
        try:
            return Artifact.from_dict(data)
        except KeyError as e:
            raise StorageError(
                f"Artifact file {path} is missing field {e}", {"path": str(path)}
            ) from e

    def load(self, artifact_id: str) -> Optional[Artifact]:
        # An ID that cannot name a file cannot have been saved
        if self._id_problem(artifact_id) is not None:
            return None
        path = self._path_for(artifact_id)
        if not path.is_file():
            return None
        return self._read(path)

    def save(self, artifact: Artifact) -> None:
        path = self._path_for(artifact.id)
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(artifact.to_dict(), f, indent=2)
                f.write("\n")
        except OSError as e:
            raise StorageError(
                f"Failed to write artifact {artifact.id}: {e}", {"path": str(path)}
            ) from e
        logger.debug(f"Saved artifact {artifact.id} to {path}")

    def list(self, artifact_filter: Optional[ArtifactFilter] = None) -> List[Artifact]:
        if not self.base_path.is_dir():
            return []
        artifacts = []
        for path in sorted(self.base_path.glob("*.json")):
            artifact = self._read(path)
            if artifact_filter is None or artifact_filter.matches(artifact):
                artifacts.append(artifact)
        return artifacts

    def exists(self, artifact_id: str) -> bool:
        if self._id_problem(artifact_id) is not None:
            return False
        return self._path_for(artifact_id).is_file()
