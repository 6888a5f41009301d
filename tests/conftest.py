# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures for graph engine tests."""

from typing import Callable

import pytest

from decision_links.models import Artifact
from decision_links.storage import InMemoryArtifactStore
from tests.factories import build_artifact


@pytest.fixture
def store() -> InMemoryArtifactStore:
    """Empty in-memory artifact store."""
    return InMemoryArtifactStore()


@pytest.fixture
def add_artifact(store: InMemoryArtifactStore) -> Callable[..., Artifact]:
    """Save a new artifact into the store and return it."""

    def _add(artifact_id: str, **kwargs) -> Artifact:
        artifact = build_artifact(artifact_id, **kwargs)
        store.save(artifact)
        return artifact

    return _add
