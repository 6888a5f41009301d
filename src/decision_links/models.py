# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Core data models for decision-record artifacts and their links.

This module defines the foundational data structures used throughout the system:
- ArtifactType / ArtifactStatus: Vocabularies for artifact kinds and lifecycle
- ReferenceType: Restricted vocabulary persisted inside artifacts
- LinkType: Full link vocabulary used by the link maintainer
- Reference: A persisted, one-directional pointer owned by an artifact
- Artifact: A decision-record document (RFC, ADR or decomposition plan)
- Link, LinkInfo, LinkResult, DuplicateLinkResult, LinkDisplay: Link views

Only Reference lists are persisted; Links are synthesized from them on read.
All models use JSON-compatible primitives for serialization.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from decision_links.errors import ValidationError

logger = logging.getLogger(__name__)


class ArtifactType:
    """Kinds of artifacts.

    Design: Using class constants (not Enum) for JSON-compatible strings.
    """

    RFC = "rfc"  # design proposal
    ADR = "adr"  # architecture decision record
    DECOMPOSITION = "decomposition"  # decomposition plan

    ALL = (RFC, ADR, DECOMPOSITION)


class ArtifactStatus:
    """Lifecycle statuses across all artifact kinds."""

    # RFC
    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    REJECTED = "rejected"
    IMPLEMENTED = "implemented"

    # ADR
    PROPOSED = "proposed"
    ACCEPTED = "accepted"
    DEPRECATED = "deprecated"
    SUPERSEDED = "superseded"

    # Decomposition phases
    PENDING = "pending"


class ReferenceType:
    """Reference types that may be persisted inside an artifact.

    Strictly smaller than LinkType: blocks and enables are stored as relates-to.
    """

    IMPLEMENTS = "implements"
    SUPERSEDES = "supersedes"
    DEPENDS_ON = "depends-on"
    RELATES_TO = "relates-to"

    ALL = (IMPLEMENTS, SUPERSEDES, DEPENDS_ON, RELATES_TO)


class LinkType:
    """Link types accepted by the link maintainer."""

    IMPLEMENTS = "implements"
    SUPERSEDES = "supersedes"
    RELATES_TO = "relates-to"
    DEPENDS_ON = "depends-on"
    BLOCKS = "blocks"
    ENABLES = "enables"

    ALL = (IMPLEMENTS, SUPERSEDES, RELATES_TO, DEPENDS_ON, BLOCKS, ENABLES)


# ID prefix -> artifact type
ID_PREFIXES: Dict[str, str] = {
    "RFC": ArtifactType.RFC,
    "ADR": ArtifactType.ADR,
    "DECOMP": ArtifactType.DECOMPOSITION,
}


def artifact_type_from_id(artifact_id: str) -> Optional[str]:
    """Derive the artifact type from an ID prefix.

    Args:
        artifact_id: ID such as "RFC-0001" or "DECOMP-0003".

    Returns:
        Artifact type string, or None if the prefix is not recognized.
    """
    prefix = artifact_id.split("-", 1)[0].upper()
    return ID_PREFIXES.get(prefix)


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        # fromisoformat() rejects a trailing "Z" before Python 3.11
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    raise ValidationError(f"Invalid timestamp: {value!r}", field="timestamp")


@dataclass
class Reference:
    """A persisted, one-directional pointer from one artifact to another.

    Serialized field names (targetId, targetType, referenceType) are a durable
    contract shared with the document serializer.
    """

    target_id: str
    target_type: str  # ArtifactType value, redundant with the target ID prefix
    reference_type: str  # ReferenceType value

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "targetId": self.target_id,
            "targetType": self.target_type,
            "referenceType": self.reference_type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reference":
        """Deserialize from JSON-compatible dict.

        Raises:
            KeyError: If required fields are missing from data dict.
            ValidationError: If targetType or referenceType is out of vocabulary.
        """
        reference_type = data["referenceType"]
        if reference_type not in ReferenceType.ALL:
            raise ValidationError(
                f"Invalid reference type '{reference_type}' for {data['targetId']}",
                field="referenceType",
            )
        target_type = data["targetType"]
        if target_type not in ArtifactType.ALL:
            raise ValidationError(
                f"Invalid target type '{target_type}' for {data['targetId']}",
                field="targetType",
            )
        return cls(
            target_id=data["targetId"],
            target_type=target_type,
            reference_type=reference_type,
        )


@dataclass
class Artifact:
    """A decision-record document and its outgoing references."""

    id: str
    type: str  # ArtifactType value
    title: str
    status: str  # ArtifactStatus value
    owner: str = ""
    tags: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    references: List[Reference] = field(default_factory=list)

    def find_reference(self, target_id: str) -> Optional[Reference]:
        """Return the first reference pointing at target_id, if any."""
        for ref in self.references:
            if ref.target_id == target_id:
                return ref
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "status": self.status,
            "owner": self.owner,
            "tags": list(self.tags),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "references": [ref.to_dict() for ref in self.references],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Artifact":
        """Deserialize from JSON-compatible dict.

        Raises:
            KeyError: If required fields are missing from data dict.
            ValidationError: If the type or any reference is invalid.
        """
        artifact_type = data["type"]
        if artifact_type not in ArtifactType.ALL:
            raise ValidationError(
                f"Invalid artifact type '{artifact_type}' for {data['id']}", field="type"
            )
        now = utc_now()
        return cls(
            id=data["id"],
            type=artifact_type,
            title=data["title"],
            status=data["status"],
            owner=data.get("owner", ""),
            tags=list(data.get("tags", [])),
            created_at=_parse_datetime(data["createdAt"]) if "createdAt" in data else now,
            updated_at=_parse_datetime(data["updatedAt"]) if "updatedAt" in data else now,
            references=[Reference.from_dict(ref) for ref in data.get("references", [])],
        )


@dataclass
class Link:
    """A view-level link synthesized from one Reference."""

    source_id: str
    target_id: str
    type: str  # LinkType value
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "sourceId": self.source_id,
            "targetId": self.target_id,
            "type": self.type,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class LinkInfo:
    """Incoming and outgoing links of one artifact."""

    incoming: List[Link] = field(default_factory=list)
    outgoing: List[Link] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "incoming": [link.to_dict() for link in self.incoming],
            "outgoing": [link.to_dict() for link in self.outgoing],
        }


@dataclass
class LinkResult:
    """Result of a link creation; warning is set for duplicate links."""

    link: Link
    warning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"link": self.link.to_dict()}
        if self.warning is not None:
            result["warning"] = self.warning
        return result


@dataclass
class DuplicateLinkResult:
    exists: bool
    existing_type: Optional[str] = None


@dataclass
class LinkDisplay:
    """Link row shown alongside an artifact."""

    id: str
    title: str
    type: str  # ArtifactType of the other endpoint
    link_type: str
    direction: str  # "incoming" or "outgoing"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "linkType": self.link_type,
            "direction": self.direction,
        }
