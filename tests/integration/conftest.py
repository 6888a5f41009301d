# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures for integration tests.

Provides a representative architecture directory: JSON artifact files plus a
.decision_links.yml configuration next to them.
"""

import json
from pathlib import Path

import pytest
import yaml

from decision_links.config import DEFAULT_CONFIG_FILENAME

SAMPLE_ARTIFACTS = [
    {
        "id": "RFC-0001",
        "type": "rfc",
        "title": "Event-driven order pipeline",
        "status": "approved",
        "owner": "alice",
        "tags": ["orders"],
        "createdAt": "2025-01-10T09:00:00Z",
        "updatedAt": "2025-01-10T09:00:00Z",
        "references": [],
    },
    {
        "id": "ADR-0001",
        "type": "adr",
        "title": "Use Kafka for order events",
        "status": "accepted",
        "owner": "bob",
        "tags": ["orders", "messaging"],
        "createdAt": "2025-01-12T09:00:00Z",
        "updatedAt": "2025-01-12T09:00:00Z",
        "references": [],
    },
    {
        "id": "ADR-0002",
        "type": "adr",
        "title": "Schema registry for events",
        "status": "proposed",
        "owner": "bob",
        "tags": ["messaging"],
        "createdAt": "2025-01-15T09:00:00Z",
        "updatedAt": "2025-01-15T09:00:00Z",
        "references": [],
    },
    {
        "id": "DECOMP-0001",
        "type": "decomposition",
        "title": "Order service split",
        "status": "pending",
        "owner": "carol",
        "tags": ["orders"],
        "createdAt": "2025-01-20T09:00:00Z",
        "updatedAt": "2025-01-20T09:00:00Z",
        "references": [],
    },
    {
        "id": "RFC-0002",
        "type": "rfc",
        "title": "Unrelated billing RFC",
        "status": "draft",
        "owner": "dave",
        "tags": ["billing"],
        "createdAt": "2025-02-01T09:00:00Z",
        "updatedAt": "2025-02-01T09:00:00Z",
        "references": [],
    },
]


@pytest.fixture
def architecture_dir(tmp_path: Path) -> Path:
    """Create an architecture directory with artifacts and configuration.

    Layout:
        <tmp>/.decision_links.yml      artifacts_dir: docs/architecture
        <tmp>/docs/architecture/*.json one file per artifact, no links yet

    Returns:
        Path to the directory holding the configuration file
    """
    artifacts_dir = tmp_path / "docs" / "architecture"
    artifacts_dir.mkdir(parents=True)

    for artifact in SAMPLE_ARTIFACTS:
        path = artifacts_dir / f"{artifact['id']}.json"
        path.write_text(json.dumps(artifact, indent=2) + "\n", encoding="utf-8")

    with open(tmp_path / DEFAULT_CONFIG_FILENAME, "w") as f:
        yaml.dump({"artifacts_dir": "docs/architecture", "graph_direction": "LR"}, f)

    return tmp_path
