# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Decision Links: relationship graph engine for RFCs, ADRs and decomposition plans."""

from .config import Config
from .errors import DecisionLinksError, NotFoundError, StorageError, ValidationError
from .graph_service import CircularDependency, GraphFormat, GraphOptions, GraphService
from .impact_service import (
    ImpactAnalysisService,
    ImpactMigrationChecklist,
    ImpactMigrationTask,
    ImpactReport,
)
from .link_service import LinkService
from .models import (
    Artifact,
    ArtifactStatus,
    ArtifactType,
    Link,
    LinkInfo,
    LinkResult,
    LinkType,
    Reference,
    ReferenceType,
)
from .service import ArtifactGraphService
from .storage import ArtifactFilter, ArtifactStore, InMemoryArtifactStore, JsonFileArtifactStore

__version__ = "0.1.0"

__all__ = [
    "Artifact",
    "ArtifactStatus",
    "ArtifactType",
    "Reference",
    "ReferenceType",
    "Link",
    "LinkInfo",
    "LinkResult",
    "LinkType",
    "ArtifactStore",
    "ArtifactFilter",
    "InMemoryArtifactStore",
    "JsonFileArtifactStore",
    "LinkService",
    "GraphService",
    "GraphOptions",
    "GraphFormat",
    "CircularDependency",
    "ImpactAnalysisService",
    "ImpactReport",
    "ImpactMigrationTask",
    "ImpactMigrationChecklist",
    "ArtifactGraphService",
    "Config",
    "DecisionLinksError",
    "NotFoundError",
    "ValidationError",
    "StorageError",
]

# Conditional import for MCP server (requires Python 3.10+ and mcp package)
try:
    from .mcp_server import DecisionLinksMCPServer

    __all__.append("DecisionLinksMCPServer")
except ImportError:
    # MCP package not available
    pass
