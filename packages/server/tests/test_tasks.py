"""
Tests for the task store.

Tests cover:
- Create: participant-only, assignee must participate, starts pending
- List: due-date ordering, status and assignee filters
- Update fields: explicit patch semantics, empty-patch round trip
- Assign / status / delete permissions
- Creator rights lapse when the creator leaves the organization
"""

from __future__ import annotations

import uuid

import pytest

from app.core.errors import Forbidden, InvalidAssignee, InvalidInput, NotFound
from app.models.task import Task
from app.services import memberships
from app.services import organizations as org_service
from app.services import tasks as task_service
from orgtasks_shared.schemas.common import TaskStatus
from orgtasks_shared.schemas.tasks import TaskCreate, TaskFieldsPatch


@pytest.fixture
async def eng(session, alice, bob):
    """Org "Eng" owned by Alice with Bob as a member."""
    org = await org_service.create_org(alice.id, "Eng", None, session)
    await org_service.join_org(org.invite_code, bob.id, session)
    await session.commit()
    return org


@pytest.fixture
def new_task(session, eng, due):
    async def _new(actor, title="Fix bug", days=0, assigned_to=None, org=None):
        task = await task_service.create_task(
            session,
            TaskCreate(title=title, due_at=due(days), assigned_to=assigned_to),
            (org or eng).id,
            actor.id,
        )
        await session.commit()
        return task

    return _new


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


class TestCreateTask:
    @pytest.mark.asyncio
    async def test_member_creates_pending_task(self, new_task, bob, alice):
        task = await new_task(bob, assigned_to=alice.id)
        assert task.status == TaskStatus.PENDING.value
        assert task.created_by == bob.id
        assert task.assigned_to == alice.id

    @pytest.mark.asyncio
    async def test_outsider_cannot_create(self, new_task, carol):
        with pytest.raises(Forbidden):
            await new_task(carol)

    @pytest.mark.asyncio
    async def test_assignee_must_be_participant(self, new_task, alice, carol):
        with pytest.raises(InvalidAssignee):
            await new_task(alice, assigned_to=carol.id)

    @pytest.mark.asyncio
    async def test_blank_title_rejected(self, new_task, alice):
        with pytest.raises(InvalidInput):
            await new_task(alice, title="   ")

    @pytest.mark.asyncio
    async def test_blank_description_stored_as_null(self, session, eng, alice, due):
        task = await task_service.create_task(
            session, TaskCreate(title="Fix bug", description="   ", due_at=due()), eng.id, alice.id
        )
        assert task.description is None

        patch = TaskFieldsPatch.model_validate({"description": ""})
        updated = await task_service.update_task_fields(session, task.id, patch, alice.id)
        assert updated.description is None

        patch = TaskFieldsPatch.model_validate({"description": "  Repro steps  "})
        updated = await task_service.update_task_fields(session, task.id, patch, alice.id)
        assert updated.description == "Repro steps"

    @pytest.mark.asyncio
    async def test_missing_org(self, session, alice, due):
        with pytest.raises(NotFound):
            await task_service.create_task(
                session, TaskCreate(title="Orphan", due_at=due()), uuid.uuid4(), alice.id
            )


# ---------------------------------------------------------------------------
# List
# ---------------------------------------------------------------------------


class TestListTasks:
    @pytest.mark.asyncio
    async def test_ordered_by_due_date(self, session, new_task, eng, alice):
        await new_task(alice, title="Later", days=5)
        await new_task(alice, title="Soonest", days=1)
        await new_task(alice, title="Middle", days=3)

        tasks = await task_service.list_tasks(session, eng.id, alice.id)
        assert [t.title for t in tasks] == ["Soonest", "Middle", "Later"]

    @pytest.mark.asyncio
    async def test_assignee_filters(self, session, new_task, eng, alice, bob):
        await new_task(alice, title="Mine", assigned_to=alice.id)
        await new_task(alice, title="Bob's", assigned_to=bob.id)
        await new_task(alice, title="Nobody's")

        mine = await task_service.list_tasks(session, eng.id, alice.id, assigned_to="me")
        unassigned = await task_service.list_tasks(session, eng.id, alice.id, assigned_to="unassigned")
        bobs = await task_service.list_tasks(session, eng.id, alice.id, assigned_to=str(bob.id))

        assert [t.title for t in mine] == ["Mine"]
        assert [t.title for t in unassigned] == ["Nobody's"]
        assert [t.title for t in bobs] == ["Bob's"]

    @pytest.mark.asyncio
    async def test_status_filter(self, session, new_task, eng, alice):
        done = await new_task(alice, title="Done")
        await new_task(alice, title="Open")
        await task_service.set_task_status(session, done.id, "completed", alice.id)
        await session.commit()

        tasks = await task_service.list_tasks(session, eng.id, alice.id, status="completed")
        assert [t.title for t in tasks] == ["Done"]

    @pytest.mark.asyncio
    async def test_bad_filters(self, session, eng, alice):
        with pytest.raises(InvalidInput):
            await task_service.list_tasks(session, eng.id, alice.id, status="archived")
        with pytest.raises(InvalidInput):
            await task_service.list_tasks(session, eng.id, alice.id, assigned_to="someone")

    @pytest.mark.asyncio
    async def test_outsider_cannot_list(self, session, eng, carol):
        with pytest.raises(Forbidden):
            await task_service.list_tasks(session, eng.id, carol.id)


# ---------------------------------------------------------------------------
# Get / update fields
# ---------------------------------------------------------------------------


class TestGetAndUpdate:
    @pytest.mark.asyncio
    async def test_participants_can_view(self, session, new_task, alice, bob, carol):
        task = await new_task(alice)
        assert (await task_service.get_task(session, task.id, bob.id)).id == task.id
        with pytest.raises(Forbidden):
            await task_service.get_task(session, task.id, carol.id)

    @pytest.mark.asyncio
    async def test_missing_task(self, session, alice):
        with pytest.raises(NotFound):
            await task_service.get_task(session, uuid.uuid4(), alice.id)

    @pytest.mark.asyncio
    async def test_empty_patch_returns_task_unchanged(self, session, new_task, alice):
        task = await new_task(alice)
        before = (task.title, task.description, task.due_at, task.status, task.assigned_to, task.updated_at)

        result = await task_service.update_task_fields(session, task.id, TaskFieldsPatch(), alice.id)
        after = (result.title, result.description, result.due_at, result.status, result.assigned_to, result.updated_at)
        assert result.id == task.id
        assert after == before

    @pytest.mark.asyncio
    async def test_partial_patch(self, session, new_task, alice, due):
        task = await new_task(alice, days=1)
        patch = TaskFieldsPatch.model_validate({"description": "Repro in staging", "due_at": due(10)})

        updated = await task_service.update_task_fields(session, task.id, patch, alice.id)
        assert updated.title == "Fix bug"
        assert updated.description == "Repro in staging"
        assert updated.due_at == due(10)

    @pytest.mark.asyncio
    async def test_null_due_date_rejected(self, session, new_task, alice):
        task = await new_task(alice)
        patch = TaskFieldsPatch.model_validate({"due_at": None})
        with pytest.raises(InvalidInput):
            await task_service.update_task_fields(session, task.id, patch, alice.id)

    @pytest.mark.asyncio
    async def test_creator_and_owner_can_update_bystander_cannot(
        self, session, new_task, alice, bob, make_user, eng
    ):
        dave = await make_user("Dave", "dave@example.com")
        await org_service.join_org(eng.invite_code, dave.id, session)
        task = await new_task(bob)

        await task_service.update_task_fields(session, task.id, TaskFieldsPatch(title="By creator"), bob.id)
        await task_service.update_task_fields(session, task.id, TaskFieldsPatch(title="By owner"), alice.id)
        with pytest.raises(Forbidden):
            await task_service.update_task_fields(session, task.id, TaskFieldsPatch(title="By dave"), dave.id)


# ---------------------------------------------------------------------------
# Assign / status / delete
# ---------------------------------------------------------------------------


class TestAssign:
    @pytest.mark.asyncio
    async def test_assign_and_unassign(self, session, new_task, alice, bob):
        task = await new_task(alice)
        assigned = await task_service.assign_task(session, task.id, bob.id, alice.id)
        assert assigned.assigned_to == bob.id

        unassigned = await task_service.assign_task(session, task.id, None, alice.id)
        assert unassigned.assigned_to is None

    @pytest.mark.asyncio
    async def test_assign_to_outsider(self, session, new_task, alice, carol):
        task = await new_task(alice)
        with pytest.raises(InvalidAssignee):
            await task_service.assign_task(session, task.id, carol.id, alice.id)

    @pytest.mark.asyncio
    async def test_assignee_cannot_reassign(self, session, new_task, alice, bob):
        task = await new_task(alice, assigned_to=bob.id)
        with pytest.raises(Forbidden):
            await task_service.assign_task(session, task.id, alice.id, bob.id)


class TestStatus:
    @pytest.mark.asyncio
    async def test_assignee_changes_status(self, session, new_task, alice, bob):
        task = await new_task(alice, assigned_to=bob.id)
        updated = await task_service.set_task_status(session, task.id, "in_progress", bob.id)
        assert updated.status == TaskStatus.IN_PROGRESS.value

    @pytest.mark.asyncio
    async def test_unknown_status(self, session, new_task, alice):
        task = await new_task(alice)
        with pytest.raises(InvalidInput):
            await task_service.set_task_status(session, task.id, "done", alice.id)

    @pytest.mark.asyncio
    async def test_bystander_cannot_change_status(self, session, new_task, alice, bob):
        task = await new_task(alice)
        with pytest.raises(Forbidden):
            await task_service.set_task_status(session, task.id, "completed", bob.id)

    @pytest.mark.asyncio
    async def test_outsider_with_unknown_status_is_forbidden(self, session, new_task, alice, carol):
        task = await new_task(alice)
        with pytest.raises(Forbidden):
            await task_service.set_task_status(session, task.id, "done", carol.id)


class TestDelete:
    @pytest.mark.asyncio
    async def test_creator_deletes(self, session, new_task, bob):
        task = await new_task(bob)
        await task_service.delete_task(session, task.id, bob.id)
        await session.commit()
        assert await session.get(Task, task.id) is None

    @pytest.mark.asyncio
    async def test_assignee_cannot_delete(self, session, new_task, alice, bob):
        task = await new_task(alice, assigned_to=bob.id)
        with pytest.raises(Forbidden):
            await task_service.delete_task(session, task.id, bob.id)


# ---------------------------------------------------------------------------
# Creator rights lapse
# ---------------------------------------------------------------------------


class TestCreatorLapse:
    @pytest.mark.asyncio
    async def test_former_member_loses_creator_rights(self, session, new_task, eng, bob):
        task = await new_task(bob)
        await memberships.leave_org(eng.id, bob.id, session)
        await session.commit()

        with pytest.raises(Forbidden):
            await task_service.update_task_fields(session, task.id, TaskFieldsPatch(title="Still mine?"), bob.id)
        with pytest.raises(Forbidden):
            await task_service.delete_task(session, task.id, bob.id)

        # The task itself stays, still attributed to its creator.
        kept = await session.get(Task, task.id)
        assert kept.created_by == bob.id
