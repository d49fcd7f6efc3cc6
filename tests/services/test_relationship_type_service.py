"""Tests for the relationship type service layer."""
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from uuid6 import uuid7

from models.task import TaskStatus
from models.task_relationship import TaskRelationship
from models.task_relationship_type import TaskRelationshipType
from schemas.relationship import RelationshipCreate
from schemas.relationship_type import RelationshipTypeCreate, RelationshipTypeUpdate
from services import relationship_service
from services.exceptions import (
    DuplicateRelationshipTypeError,
    InvalidRelationshipTypeError,
    RelationshipTypeNotFoundError,
    StatusSetDeserializationError,
    SystemRelationshipTypeError,
)
from services.relationship_type_service import (
    create_relationship_type,
    delete_relationship_type,
    find_all,
    find_by_name,
    find_system_types,
    get_relationship_type,
    seed_system_types,
    update_relationship_type,
    validate_relationship_type,
)


def _type_data(**overrides: object) -> RelationshipTypeCreate:
    payload: dict = {"type_name": "relates", "display_name": "Relates To"}
    payload.update(overrides)
    return RelationshipTypeCreate(**payload)


class TestValidateRelationshipType:
    """Tests for the structural rules shared by create and update."""

    def test__directional_without_reverse_label__rejected(self) -> None:
        with pytest.raises(InvalidRelationshipTypeError):
            validate_relationship_type(
                is_directional=True,
                forward_label="blocks",
                reverse_label=None,
                enforces_blocking=False,
                blocking_disabled_statuses=None,
                blocking_source_statuses=None,
            )

    def test__non_directional_without_labels__accepted(self) -> None:
        validate_relationship_type(
            is_directional=False,
            forward_label=None,
            reverse_label=None,
            enforces_blocking=False,
            blocking_disabled_statuses=None,
            blocking_source_statuses=None,
        )

    def test__blocking_with_empty_status_set__rejected(self) -> None:
        with pytest.raises(InvalidRelationshipTypeError):
            validate_relationship_type(
                is_directional=False,
                forward_label=None,
                reverse_label=None,
                enforces_blocking=True,
                blocking_disabled_statuses="[]",
                blocking_source_statuses='["todo"]',
            )

    def test__blocking_with_malformed_stored_set__raises_deserialization_error(self) -> None:
        with pytest.raises(StatusSetDeserializationError):
            validate_relationship_type(
                is_directional=False,
                forward_label=None,
                reverse_label=None,
                enforces_blocking=True,
                blocking_disabled_statuses='["finished"]',
                blocking_source_statuses='["todo"]',
            )


class TestCreateRelationshipType:
    """Tests for create_relationship_type."""

    @pytest.mark.asyncio
    async def test__create__directional_with_both_labels(self, db_session: AsyncSession) -> None:
        rel_type = await create_relationship_type(
            db_session,
            _type_data(is_directional=True, forward_label="parent of", reverse_label="child of"),
        )

        assert rel_type.id is not None
        assert rel_type.is_directional is True
        assert rel_type.forward_label == "parent of"
        assert rel_type.reverse_label == "child of"
        assert rel_type.is_system is False

    @pytest.mark.asyncio
    async def test__create__directional_missing_label_rejected(
        self, db_session: AsyncSession,
    ) -> None:
        with pytest.raises(InvalidRelationshipTypeError):
            await create_relationship_type(
                db_session, _type_data(is_directional=True, forward_label="parent of"),
            )

    @pytest.mark.asyncio
    async def test__create__blank_label_counts_as_missing(self, db_session: AsyncSession) -> None:
        with pytest.raises(InvalidRelationshipTypeError):
            await create_relationship_type(
                db_session,
                _type_data(is_directional=True, forward_label="parent of", reverse_label="   "),
            )

    @pytest.mark.asyncio
    async def test__create__blocking_missing_status_set_rejected(
        self, db_session: AsyncSession,
    ) -> None:
        with pytest.raises(InvalidRelationshipTypeError):
            await create_relationship_type(
                db_session,
                _type_data(enforces_blocking=True, blocking_disabled_statuses=["done"]),
            )

    @pytest.mark.asyncio
    async def test__create__blocking_with_both_sets_stores_serialized(
        self, db_session: AsyncSession,
    ) -> None:
        rel_type = await create_relationship_type(
            db_session,
            _type_data(
                enforces_blocking=True,
                blocking_disabled_statuses=["done", "done"],
                blocking_source_statuses=["todo", "inprogress"],
            ),
        )

        assert rel_type.blocking_disabled_statuses == '["done"]'
        assert rel_type.blocking_source_statuses == '["todo", "inprogress"]'

    @pytest.mark.asyncio
    async def test__create__duplicate_name_rejected(self, db_session: AsyncSession) -> None:
        await create_relationship_type(db_session, _type_data())

        with pytest.raises(DuplicateRelationshipTypeError):
            await create_relationship_type(db_session, _type_data(display_name="Other"))


class TestUpdateRelationshipType:
    """Tests for update_relationship_type merge-then-validate behavior."""

    @pytest.mark.asyncio
    async def test__update__enable_blocking_without_stored_sets_rejected(
        self, db_session: AsyncSession,
    ) -> None:
        rel_type = await create_relationship_type(db_session, _type_data())

        with pytest.raises(InvalidRelationshipTypeError):
            await update_relationship_type(
                db_session, rel_type.id, RelationshipTypeUpdate(enforces_blocking=True),
            )

    @pytest.mark.asyncio
    async def test__update__enable_blocking_with_sets_in_payload(
        self, db_session: AsyncSession,
    ) -> None:
        rel_type = await create_relationship_type(db_session, _type_data())

        updated = await update_relationship_type(
            db_session,
            rel_type.id,
            RelationshipTypeUpdate(
                enforces_blocking=True,
                blocking_disabled_statuses=[TaskStatus.DONE],
                blocking_source_statuses=[TaskStatus.TODO],
            ),
        )

        assert updated.enforces_blocking is True
        assert updated.blocking_disabled_statuses == '["done"]'

    @pytest.mark.asyncio
    async def test__update__enable_blocking_uses_previously_stored_sets(
        self, db_session: AsyncSession,
    ) -> None:
        rel_type = await create_relationship_type(
            db_session,
            _type_data(
                blocking_disabled_statuses=["done"],
                blocking_source_statuses=["todo"],
            ),
        )

        updated = await update_relationship_type(
            db_session, rel_type.id, RelationshipTypeUpdate(enforces_blocking=True),
        )

        assert updated.enforces_blocking is True

    @pytest.mark.asyncio
    async def test__update__clearing_label_of_directional_type_rejected(
        self, db_session: AsyncSession,
    ) -> None:
        rel_type = await create_relationship_type(
            db_session,
            _type_data(is_directional=True, forward_label="parent of", reverse_label="child of"),
        )

        with pytest.raises(InvalidRelationshipTypeError):
            await update_relationship_type(
                db_session, rel_type.id, RelationshipTypeUpdate(reverse_label=None),
            )

    @pytest.mark.asyncio
    async def test__update__omitted_fields_keep_values(self, db_session: AsyncSession) -> None:
        rel_type = await create_relationship_type(
            db_session, _type_data(description="original"),
        )

        updated = await update_relationship_type(
            db_session, rel_type.id, RelationshipTypeUpdate(display_name="Renamed"),
        )

        assert updated.display_name == "Renamed"
        assert updated.description == "original"
        assert updated.type_name == "relates"

    @pytest.mark.asyncio
    async def test__update__rename_to_taken_name_rejected(self, db_session: AsyncSession) -> None:
        await create_relationship_type(db_session, _type_data(type_name="first"))
        second = await create_relationship_type(db_session, _type_data(type_name="second"))

        with pytest.raises(DuplicateRelationshipTypeError):
            await update_relationship_type(
                db_session, second.id, RelationshipTypeUpdate(type_name="first"),
            )

    @pytest.mark.asyncio
    async def test__update__missing_type_raises_not_found(self, db_session: AsyncSession) -> None:
        with pytest.raises(RelationshipTypeNotFoundError):
            await update_relationship_type(
                db_session, uuid7(), RelationshipTypeUpdate(display_name="x"),
            )


class TestDeleteRelationshipType:
    """Tests for delete_relationship_type."""

    @pytest.mark.asyncio
    async def test__delete__system_type_forbidden(
        self,
        db_session: AsyncSession,
        system_types: dict[str, TaskRelationshipType],
    ) -> None:
        with pytest.raises(SystemRelationshipTypeError):
            await delete_relationship_type(db_session, system_types["blocked"].id)

        assert await find_by_name(db_session, "blocked") is not None

    @pytest.mark.asyncio
    async def test__delete__non_system_type_removes_its_relationships(
        self,
        db_session: AsyncSession,
        make_task,
    ) -> None:
        rel_type = await create_relationship_type(db_session, _type_data())
        task_a = await make_task("A")
        task_b = await make_task("B")
        await relationship_service.create_relationship(
            db_session,
            task_a.id,
            RelationshipCreate(target_task_id=task_b.id, relationship_type_id=rel_type.id),
        )

        removed = await delete_relationship_type(db_session, rel_type.id)

        assert removed == 1
        with pytest.raises(RelationshipTypeNotFoundError):
            await get_relationship_type(db_session, rel_type.id)
        count = await db_session.scalar(select(func.count()).select_from(TaskRelationship))
        assert count == 0

    @pytest.mark.asyncio
    async def test__delete__missing_type_raises_not_found(self, db_session: AsyncSession) -> None:
        with pytest.raises(RelationshipTypeNotFoundError):
            await delete_relationship_type(db_session, uuid7())


class TestQueries:
    """Tests for lookups and listings."""

    @pytest.mark.asyncio
    async def test__find_all__ordered_by_display_name(self, db_session: AsyncSession) -> None:
        await create_relationship_type(db_session, _type_data(type_name="z", display_name="Zeta"))
        await create_relationship_type(db_session, _type_data(type_name="a", display_name="Alpha"))

        types = await find_all(db_session)

        assert [t.display_name for t in types] == ["Alpha", "Zeta"]

    @pytest.mark.asyncio
    async def test__find_all__search_is_case_insensitive(self, db_session: AsyncSession) -> None:
        await create_relationship_type(
            db_session, _type_data(type_name="duplicates", display_name="Duplicates"),
        )
        await create_relationship_type(
            db_session, _type_data(type_name="follows", display_name="Follows"),
        )

        types = await find_all(db_session, search="DUPL")

        assert [t.type_name for t in types] == ["duplicates"]

    @pytest.mark.asyncio
    async def test__find_all__search_treats_wildcards_literally(
        self, db_session: AsyncSession,
    ) -> None:
        await create_relationship_type(
            db_session, _type_data(type_name="relates", display_name="Relates"),
        )
        await create_relationship_type(
            db_session, _type_data(type_name="dup_of", display_name="Duplicate Of"),
        )

        assert [t.type_name for t in await find_all(db_session, search="_")] == ["dup_of"]
        assert await find_all(db_session, search="%") == []

    @pytest.mark.asyncio
    async def test__find_by_name__missing_returns_none(self, db_session: AsyncSession) -> None:
        assert await find_by_name(db_session, "nope") is None

    @pytest.mark.asyncio
    async def test__find_system_types__only_system(
        self,
        db_session: AsyncSession,
        system_types: dict[str, TaskRelationshipType],
    ) -> None:
        await create_relationship_type(db_session, _type_data())

        types = await find_system_types(db_session)

        assert {t.type_name for t in types} == {"blocked", "context"}
        assert all(t.is_system for t in types)


class TestSeedSystemTypes:
    """Tests for seed_system_types."""

    @pytest.mark.asyncio
    async def test__seed__creates_blocked_and_context(self, db_session: AsyncSession) -> None:
        created = await seed_system_types(db_session)

        by_name = {t.type_name: t for t in created}
        assert set(by_name) == {"blocked", "context"}
        blocked = by_name["blocked"]
        assert blocked.enforces_blocking is True
        assert blocked.forward_label == "blocks"
        assert blocked.reverse_label == "blocked by"
        assert blocked.blocking_disabled_statuses == '["todo", "inreview", "done", "cancelled"]'
        assert blocked.blocking_source_statuses == '["todo", "inprogress", "inreview"]'
        assert by_name["context"].enforces_blocking is False

    @pytest.mark.asyncio
    async def test__seed__is_idempotent(self, db_session: AsyncSession) -> None:
        await seed_system_types(db_session)

        created_again = await seed_system_types(db_session)

        assert created_again == []
        assert len(await find_system_types(db_session)) == 2
