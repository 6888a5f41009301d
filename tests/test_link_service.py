# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Unit tests for LinkService.

Tests cover:
- Bidirectional link creation and inverse/compressed reference types
- Duplicate detection (warning, first writer wins)
- Not-found handling and batch validation before mutation
- Removal, re-typing and incoming/outgoing link reads
- Partial persistence when the second save fails
"""

import pytest

from decision_links.errors import NotFoundError, ValidationError
from decision_links.link_service import (
    LinkService,
    inverse_link_type,
    to_reference_type,
)
from decision_links.models import ArtifactType, LinkType, ReferenceType
from decision_links.storage import InMemoryArtifactStore
from tests.factories import build_artifact


class FailingSaveStore(InMemoryArtifactStore):
    """Store whose save() starts failing after a number of successful saves."""

    def __init__(self, artifacts, successful_saves: int) -> None:
        self.remaining_saves = None
        super().__init__(artifacts)
        self.remaining_saves = successful_saves

    def save(self, artifact) -> None:
        if self.remaining_saves is not None:
            if self.remaining_saves == 0:
                raise OSError("disk full")
            self.remaining_saves -= 1
        super().save(artifact)


class TestLinkTypeTables:
    """Tests for inverse and storage-compression tables."""

    @pytest.mark.parametrize(
        "link_type,expected",
        [
            ("implements", "depends-on"),
            ("depends-on", "enables"),
            ("enables", "depends-on"),
            ("supersedes", "supersedes"),
            ("relates-to", "relates-to"),
            ("blocks", "blocks"),
        ],
    )
    def test_inverse_link_type(self, link_type, expected):
        assert inverse_link_type(link_type) == expected

    @pytest.mark.parametrize(
        "link_type,expected",
        [
            ("implements", "implements"),
            ("supersedes", "supersedes"),
            ("depends-on", "depends-on"),
            ("relates-to", "relates-to"),
            ("blocks", "relates-to"),
            ("enables", "relates-to"),
        ],
    )
    def test_compression_into_reference_vocabulary(self, link_type, expected):
        assert to_reference_type(link_type) == expected
        assert to_reference_type(link_type) in ReferenceType.ALL

    def test_unknown_link_type_rejected(self):
        with pytest.raises(ValidationError):
            inverse_link_type("owns")


class TestCreateLink:
    """Tests for create_link."""

    def test_creates_references_on_both_sides(self, store, add_artifact):
        add_artifact("RFC-0001")
        add_artifact("ADR-0001")
        service = LinkService(store)

        result = service.create_link("RFC-0001", "ADR-0001", LinkType.IMPLEMENTS)

        source = store.load("RFC-0001")
        target = store.load("ADR-0001")
        assert [r.to_dict() for r in source.references] == [
            {"targetId": "ADR-0001", "targetType": "adr", "referenceType": "implements"}
        ]
        assert [r.to_dict() for r in target.references] == [
            {"targetId": "RFC-0001", "targetType": "rfc", "referenceType": "depends-on"}
        ]
        assert result.warning is None
        assert result.link.source_id == "RFC-0001"
        assert result.link.target_id == "ADR-0001"
        assert result.link.type == "implements"

    @pytest.mark.parametrize("link_type", LinkType.ALL)
    def test_bidirectional_for_every_type(self, store, add_artifact, link_type):
        add_artifact("ADR-0001")
        add_artifact("DECOMP-0001")

        LinkService(store).create_link("DECOMP-0001", "ADR-0001", link_type)

        assert store.load("DECOMP-0001").find_reference("ADR-0001") is not None
        back = store.load("ADR-0001").find_reference("DECOMP-0001")
        assert back is not None
        assert back.target_type == ArtifactType.DECOMPOSITION
        assert back.reference_type == to_reference_type(inverse_link_type(link_type))

    def test_blocks_and_enables_persist_as_relates_to(self, store, add_artifact):
        add_artifact("RFC-0001")
        add_artifact("RFC-0002")
        add_artifact("RFC-0003")
        service = LinkService(store)

        service.create_link("RFC-0001", "RFC-0002", LinkType.BLOCKS)
        service.create_link("RFC-0001", "RFC-0003", LinkType.ENABLES)

        refs = {r.target_id: r.reference_type for r in store.load("RFC-0001").references}
        assert refs == {"RFC-0002": "relates-to", "RFC-0003": "relates-to"}
        # enables inverts to depends-on, which survives compression
        assert store.load("RFC-0003").find_reference("RFC-0001").reference_type == "depends-on"

    def test_bumps_updated_at_on_both_sides(self, store, add_artifact):
        source = add_artifact("RFC-0001")
        target = add_artifact("ADR-0001")

        result = LinkService(store).create_link("RFC-0001", "ADR-0001", LinkType.RELATES_TO)

        assert store.load("RFC-0001").updated_at == result.link.created_at
        assert store.load("ADR-0001").updated_at == result.link.created_at
        assert result.link.created_at >= source.updated_at
        assert result.link.created_at >= target.updated_at

    def test_duplicate_link_warns_and_keeps_first_type(self, store, add_artifact):
        add_artifact("RFC-0001")
        add_artifact("ADR-0001")
        service = LinkService(store)
        service.create_link("RFC-0001", "ADR-0001", LinkType.IMPLEMENTS)

        result = service.create_link("RFC-0001", "ADR-0001", LinkType.SUPERSEDES)

        assert result.warning is not None
        assert "RFC-0001" in result.warning
        assert "ADR-0001" in result.warning
        assert "implements" in result.warning
        source = store.load("RFC-0001")
        assert len(source.references) == 1
        assert source.references[0].reference_type == "implements"
        assert len(store.load("ADR-0001").references) == 1

    def test_reverse_link_reports_duplicate(self, store, add_artifact):
        """The inverse reference makes the reverse direction a duplicate."""
        add_artifact("RFC-0001")
        add_artifact("ADR-0001")
        service = LinkService(store)
        service.create_link("RFC-0001", "ADR-0001", LinkType.IMPLEMENTS)

        result = service.create_link("ADR-0001", "RFC-0001", LinkType.RELATES_TO)

        assert result.warning is not None
        assert "depends-on" in result.warning

    def test_missing_source(self, store, add_artifact):
        add_artifact("ADR-0001")

        with pytest.raises(NotFoundError) as exc_info:
            LinkService(store).create_link("RFC-0404", "ADR-0001", LinkType.IMPLEMENTS)

        assert "RFC-0404" in str(exc_info.value)
        assert store.load("ADR-0001").references == []

    def test_missing_target(self, store, add_artifact):
        add_artifact("RFC-0001")

        with pytest.raises(NotFoundError) as exc_info:
            LinkService(store).create_link("RFC-0001", "ADR-0404", LinkType.IMPLEMENTS)

        assert "ADR-0404" in str(exc_info.value)
        assert exc_info.value.resource_id == "ADR-0404"
        assert store.load("RFC-0001").references == []

    def test_invalid_type_rejected_before_mutation(self, store, add_artifact):
        add_artifact("RFC-0001")
        add_artifact("ADR-0001")

        with pytest.raises(ValidationError):
            LinkService(store).create_link("RFC-0001", "ADR-0001", "owns")

        assert store.load("RFC-0001").references == []

    def test_self_link_adds_single_reference(self, store, add_artifact):
        add_artifact("RFC-0001")

        LinkService(store).create_link("RFC-0001", "RFC-0001", LinkType.RELATES_TO)

        refs = store.load("RFC-0001").references
        assert len(refs) == 1
        assert refs[0].target_id == "RFC-0001"

    def test_failed_second_save_leaves_link_asymmetric(self):
        store = FailingSaveStore(
            [build_artifact("RFC-0001"), build_artifact("ADR-0001")], successful_saves=1
        )

        with pytest.raises(OSError):
            LinkService(store).create_link("RFC-0001", "ADR-0001", LinkType.IMPLEMENTS)

        assert store.load("RFC-0001").find_reference("ADR-0001") is not None
        assert store.load("ADR-0001").references == []


class TestRemoveAndUpdate:
    """Tests for remove_link and update_link_type."""

    def test_remove_link_clears_both_sides(self, store, add_artifact):
        add_artifact("RFC-0001")
        add_artifact("ADR-0001")
        service = LinkService(store)
        service.create_link("RFC-0001", "ADR-0001", LinkType.IMPLEMENTS)

        service.remove_link("RFC-0001", "ADR-0001")

        assert store.load("RFC-0001").references == []
        assert store.load("ADR-0001").references == []

    def test_remove_link_with_one_side_already_missing(self, store, add_artifact):
        add_artifact("RFC-0001")
        add_artifact("ADR-0001")
        service = LinkService(store)
        service.create_link("RFC-0001", "ADR-0001", LinkType.IMPLEMENTS)
        target = store.load("ADR-0001")
        target.references = []
        store.save(target)

        service.remove_link("RFC-0001", "ADR-0001")

        assert store.load("RFC-0001").references == []

    def test_remove_link_with_missing_artifacts_is_not_an_error(self, store):
        LinkService(store).remove_link("RFC-0404", "ADR-0404")

    def test_remove_link_keeps_other_references(self, store, add_artifact):
        for artifact_id in ("RFC-0001", "ADR-0001", "ADR-0002"):
            add_artifact(artifact_id)
        service = LinkService(store)
        service.create_link("RFC-0001", "ADR-0001", LinkType.IMPLEMENTS)
        service.create_link("RFC-0001", "ADR-0002", LinkType.IMPLEMENTS)

        service.remove_link("RFC-0001", "ADR-0001")

        assert [r.target_id for r in store.load("RFC-0001").references] == ["ADR-0002"]
        assert store.load("ADR-0002").find_reference("RFC-0001") is not None

    def test_update_link_type(self, store, add_artifact):
        add_artifact("RFC-0001")
        add_artifact("RFC-0002")
        service = LinkService(store)
        service.create_link("RFC-0002", "RFC-0001", LinkType.RELATES_TO)

        link = service.update_link_type("RFC-0002", "RFC-0001", LinkType.SUPERSEDES)

        assert link.type == "supersedes"
        assert store.load("RFC-0002").find_reference("RFC-0001").reference_type == "supersedes"
        assert store.load("RFC-0001").find_reference("RFC-0002").reference_type == "supersedes"


class TestGetLinks:
    """Tests for get_links and related read operations."""

    def test_outgoing_and_incoming(self, store, add_artifact):
        for artifact_id in ("RFC-0001", "ADR-0001", "DECOMP-0001"):
            add_artifact(artifact_id)
        service = LinkService(store)
        service.create_link("RFC-0001", "ADR-0001", LinkType.IMPLEMENTS)
        service.create_link("DECOMP-0001", "ADR-0001", LinkType.DEPENDS_ON)

        info = service.get_links("ADR-0001")

        assert {(l.target_id, l.type) for l in info.outgoing} == {
            ("RFC-0001", "depends-on"),
            ("DECOMP-0001", "relates-to"),
        }
        assert all(l.source_id == "ADR-0001" for l in info.outgoing)
        assert {(l.source_id, l.type) for l in info.incoming} == {
            ("RFC-0001", "implements"),
            ("DECOMP-0001", "depends-on"),
        }

    def test_incoming_created_at_comes_from_referrer(self, store, add_artifact):
        add_artifact("RFC-0001")
        add_artifact("ADR-0001")
        service = LinkService(store)
        service.create_link("RFC-0001", "ADR-0001", LinkType.IMPLEMENTS)

        incoming = service.get_links("ADR-0001").incoming

        assert incoming[0].created_at == store.load("RFC-0001").updated_at

    def test_unknown_artifact_has_no_links(self, store):
        info = LinkService(store).get_links("ADR-0404")
        assert info.incoming == []
        assert info.outgoing == []

    def test_link_exists_and_check_duplicate(self, store, add_artifact):
        add_artifact("RFC-0001")
        add_artifact("ADR-0001")
        service = LinkService(store)
        assert service.link_exists("RFC-0001", "ADR-0001") is False
        assert service.check_duplicate_link("RFC-0001", "ADR-0001").exists is False

        service.create_link("RFC-0001", "ADR-0001", LinkType.IMPLEMENTS)

        assert service.link_exists("RFC-0001", "ADR-0001") is True
        duplicate = service.check_duplicate_link("RFC-0001", "ADR-0001")
        assert duplicate.exists is True
        assert duplicate.existing_type == "implements"
        assert service.link_exists("RFC-0404", "ADR-0001") is False

    def test_links_for_display(self, store, add_artifact):
        add_artifact("RFC-0001", title="Event bus")
        add_artifact("ADR-0001", title="Use Kafka")
        service = LinkService(store)
        service.create_link("RFC-0001", "ADR-0001", LinkType.IMPLEMENTS)

        rows = service.get_links_for_display("ADR-0001")

        assert [(r.id, r.title, r.type, r.link_type, r.direction) for r in rows] == [
            ("RFC-0001", "Event bus", "rfc", "depends-on", "outgoing"),
            ("RFC-0001", "Event bus", "rfc", "implements", "incoming"),
        ]

    def test_links_for_display_skips_dangling_references(self, store, add_artifact):
        add_artifact("RFC-0001")
        add_artifact("ADR-0001")
        service = LinkService(store)
        service.create_link("RFC-0001", "ADR-0001", LinkType.IMPLEMENTS)
        # Drop ADR-0001 from the store behind the engine's back
        store._artifacts.pop("ADR-0001")

        assert service.get_links_for_display("RFC-0001") == []


class TestBatchLink:
    """Tests for batch_link."""

    def test_links_every_target(self, store, add_artifact):
        for artifact_id in ("RFC-0001", "ADR-0001", "ADR-0002", "DECOMP-0001"):
            add_artifact(artifact_id)

        results = LinkService(store).batch_link(
            "RFC-0001", ["ADR-0001", "ADR-0002", "DECOMP-0001"], LinkType.IMPLEMENTS
        )

        assert [r.link.target_id for r in results] == ["ADR-0001", "ADR-0002", "DECOMP-0001"]
        assert len(store.load("RFC-0001").references) == 3
        for target_id in ("ADR-0001", "ADR-0002", "DECOMP-0001"):
            assert store.load(target_id).find_reference("RFC-0001") is not None

    def test_missing_target_creates_no_links(self, store, add_artifact):
        for artifact_id in ("RFC-0001", "ADR-0001", "ADR-0002"):
            add_artifact(artifact_id)

        with pytest.raises(NotFoundError) as exc_info:
            LinkService(store).batch_link(
                "RFC-0001", ["ADR-0001", "ADR-0404", "ADR-0002"], LinkType.IMPLEMENTS
            )

        assert "ADR-0404" in str(exc_info.value)
        for artifact_id in ("RFC-0001", "ADR-0001", "ADR-0002"):
            assert store.load(artifact_id).references == []

    def test_missing_source(self, store, add_artifact):
        add_artifact("ADR-0001")

        with pytest.raises(NotFoundError) as exc_info:
            LinkService(store).batch_link("RFC-0404", ["ADR-0001"], LinkType.IMPLEMENTS)

        assert "RFC-0404" in str(exc_info.value)

    def test_empty_batch(self, store, add_artifact):
        add_artifact("RFC-0001")
        assert LinkService(store).batch_link("RFC-0001", [], LinkType.IMPLEMENTS) == []
