# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Link maintainer for bidirectional artifact relationships.

A link is persisted as two References: one on the source pointing at the
target with the (compressed) link type, and one on the target pointing back
with the (compressed) inverse type. Incoming links are never stored; they are
derived by scanning every artifact in the store.

Link type handling:
- INVERSE_LINK_TYPES: type installed on the target side
- REFERENCE_TYPE_FOR_LINK: lossy compression into the persisted vocabulary
  (blocks and enables are stored as relates-to)

There is no cross-artifact transaction. If the target-side save fails after
the source-side save succeeded, the link is left asymmetric and the store
error propagates.
"""

import logging
from typing import Dict, List, Sequence

from decision_links.errors import NotFoundError, ValidationError
from decision_links.models import (
    Artifact,
    DuplicateLinkResult,
    Link,
    LinkDisplay,
    LinkInfo,
    LinkResult,
    LinkType,
    Reference,
    ReferenceType,
    utc_now,
)
from decision_links.storage import ArtifactStore

logger = logging.getLogger(__name__)

INVERSE_LINK_TYPES: Dict[str, str] = {
    LinkType.IMPLEMENTS: LinkType.DEPENDS_ON,  # A implements B => B depends-on A
    LinkType.DEPENDS_ON: LinkType.ENABLES,  # A depends-on B => B enables A
    LinkType.ENABLES: LinkType.DEPENDS_ON,  # A enables B => B depends-on A
    LinkType.SUPERSEDES: LinkType.SUPERSEDES,
    LinkType.RELATES_TO: LinkType.RELATES_TO,
    LinkType.BLOCKS: LinkType.BLOCKS,
}

REFERENCE_TYPE_FOR_LINK: Dict[str, str] = {
    LinkType.IMPLEMENTS: ReferenceType.IMPLEMENTS,
    LinkType.SUPERSEDES: ReferenceType.SUPERSEDES,
    LinkType.DEPENDS_ON: ReferenceType.DEPENDS_ON,
    LinkType.RELATES_TO: ReferenceType.RELATES_TO,
    LinkType.BLOCKS: ReferenceType.RELATES_TO,
    LinkType.ENABLES: ReferenceType.RELATES_TO,
}


def validate_link_type(link_type: str) -> None:
    """Raise ValidationError unless link_type is in the link vocabulary."""
    if link_type not in LinkType.ALL:
        raise ValidationError(
            f"Invalid link type '{link_type}'. Valid types: {', '.join(LinkType.ALL)}",
            field="type",
        )


def inverse_link_type(link_type: str) -> str:
    """Get the link type installed on the target side of a link."""
    validate_link_type(link_type)
    return INVERSE_LINK_TYPES[link_type]


def to_reference_type(link_type: str) -> str:
    """Compress a link type into the persisted reference vocabulary."""
    validate_link_type(link_type)
    return REFERENCE_TYPE_FOR_LINK[link_type]


class LinkService:
    """Creates, removes, re-types and reads links between artifacts.

    Every call re-reads the store; nothing is cached between calls.
    NOT safe for concurrent writers: two callers doing read-modify-write on
    the same artifact can lose an update.
    """

    def __init__(self, store: ArtifactStore) -> None:
        self.store = store

    def _load_or_raise(self, artifact_id: str) -> Artifact:
        artifact = self.store.load(artifact_id)
        if artifact is None:
            raise NotFoundError("Artifact", artifact_id)
        return artifact

    def create_link(self, source_id: str, target_id: str, link_type: str) -> LinkResult:
        """Create a bidirectional link between two artifacts.

        Updates both artifacts' reference lists. Self-links are not rejected.

        Args:
            source_id: The source artifact ID.
            target_id: The target artifact ID.
            link_type: LinkType value.

        Returns:
            LinkResult with the synthesized link, and a warning if the source
            already referenced the target.

        Raises:
            ValidationError: If link_type is not a LinkType value.
            NotFoundError: If either artifact does not exist.
        """
        validate_link_type(link_type)

        source = self._load_or_raise(source_id)
        target = self._load_or_raise(target_id)

        warning = None
        duplicate = self.check_duplicate_link(source_id, target_id)
        if duplicate.exists:
            warning = (
                f"Link already exists between {source_id} and {target_id} "
                f"with type '{duplicate.existing_type}'"
            )
            logger.warning(warning)

        created_at = utc_now()

        # Outgoing side; an existing entry for this target wins
        if source.find_reference(target_id) is None:
            source.references.append(
                Reference(
                    target_id=target_id,
                    target_type=target.type,
                    reference_type=to_reference_type(link_type),
                )
            )
            source.updated_at = created_at
            self.store.save(source)

        # Self-link: the source write above already holds the only reference
        if source_id == target_id:
            target = source

        if target.find_reference(source_id) is None:
            target.references.append(
                Reference(
                    target_id=source_id,
                    target_type=source.type,
                    reference_type=to_reference_type(inverse_link_type(link_type)),
                )
            )
            target.updated_at = created_at
            self.store.save(target)

        logger.info(f"Created link {source_id} -> {target_id} ({link_type})")
        link = Link(source_id=source_id, target_id=target_id, type=link_type, created_at=created_at)
        return LinkResult(link=link, warning=warning)

    def remove_link(self, source_id: str, target_id: str) -> None:
        """Remove a link from both sides.

        Each side is handled independently; a missing artifact or an already
        absent reference is not an error.
        """
        now = utc_now()

        source = self.store.load(source_id)
        if source is not None:
            remaining = [ref for ref in source.references if ref.target_id != target_id]
            if len(remaining) != len(source.references):
                source.references = remaining
                source.updated_at = now
                self.store.save(source)

        target = self.store.load(target_id)
        if target is not None:
            remaining = [ref for ref in target.references if ref.target_id != source_id]
            if len(remaining) != len(target.references):
                target.references = remaining
                target.updated_at = now
                self.store.save(target)

        logger.info(f"Removed link {source_id} -> {target_id}")

    def update_link_type(self, source_id: str, target_id: str, new_type: str) -> Link:
        """Re-type a link by removing and re-creating it. Not atomic."""
        validate_link_type(new_type)
        self.remove_link(source_id, target_id)
        return self.create_link(source_id, target_id, new_type).link

    def get_links(self, artifact_id: str) -> LinkInfo:
        """Get incoming and outgoing links of an artifact.

        Outgoing links come straight from the artifact's references. Incoming
        links require a scan of every artifact in the store.

        Returns:
            LinkInfo; both lists are empty if the artifact does not exist.
        """
        info = LinkInfo()
        artifact = self.store.load(artifact_id)
        if artifact is None:
            return info

        for ref in artifact.references:
            info.outgoing.append(
                Link(
                    source_id=artifact_id,
                    target_id=ref.target_id,
                    type=ref.reference_type,
                    created_at=artifact.updated_at,
                )
            )

        for other in self.store.list():
            if other.id == artifact_id:
                continue
            for ref in other.references:
                if ref.target_id == artifact_id:
                    info.incoming.append(
                        Link(
                            source_id=other.id,
                            target_id=artifact_id,
                            type=ref.reference_type,
                            created_at=other.updated_at,
                        )
                    )

        return info

    def link_exists(self, source_id: str, target_id: str) -> bool:
        """Check whether source holds a reference to target."""
        source = self.store.load(source_id)
        if source is None:
            return False
        return source.find_reference(target_id) is not None

    def check_duplicate_link(self, source_id: str, target_id: str) -> DuplicateLinkResult:
        """Check for an existing source -> target reference and report its type."""
        source = self.store.load(source_id)
        if source is None:
            return DuplicateLinkResult(exists=False)
        existing = source.find_reference(target_id)
        if existing is None:
            return DuplicateLinkResult(exists=False)
        return DuplicateLinkResult(exists=True, existing_type=existing.reference_type)

    def batch_link(
        self, source_id: str, target_ids: Sequence[str], link_type: str
    ) -> List[LinkResult]:
        """Link one source to many targets.

        The source and every target are checked before any link is created,
        so a missing ID fails the whole batch with nothing written. A store
        failure after validation leaves the links created so far in place.

        Raises:
            ValidationError: If link_type is not a LinkType value.
            NotFoundError: If the source or any target does not exist.
        """
        validate_link_type(link_type)

        if not self.store.exists(source_id):
            raise NotFoundError("Artifact", source_id)
        for target_id in target_ids:
            if not self.store.exists(target_id):
                raise NotFoundError("Artifact", target_id)

        results = [self.create_link(source_id, target_id, link_type) for target_id in target_ids]
        logger.info(f"Batch linked {source_id} to {len(results)} artifacts ({link_type})")
        return results

    def get_links_for_display(self, artifact_id: str) -> List[LinkDisplay]:
        """Get links of an artifact with the other endpoint's title and type.

        Links whose other endpoint no longer exists are skipped.
        """
        links = self.get_links(artifact_id)
        displays: List[LinkDisplay] = []

        for link in links.outgoing:
            other = self.store.load(link.target_id)
            if other is not None:
                displays.append(
                    LinkDisplay(
                        id=link.target_id,
                        title=other.title,
                        type=other.type,
                        link_type=link.type,
                        direction="outgoing",
                    )
                )

        for link in links.incoming:
            other = self.store.load(link.source_id)
            if other is not None:
                displays.append(
                    LinkDisplay(
                        id=link.source_id,
                        title=other.title,
                        type=other.type,
                        link_type=link.type,
                        direction="incoming",
                    )
                )

        return displays
