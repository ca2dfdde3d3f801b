"""
Consistency coordinator: column bookkeeping on plain objects, plus the
transactional behaviour against a real session.
"""

import asyncio
import uuid
from types import SimpleNamespace

import pytest
from sqlalchemy import select

from app.db import AppAsyncSessionLocal
from app.db_handlers import CommentDBHandler, ProjectDBHandler, UserDBHandler
from app.exceptions import ConcurrentModification, ValidationFailure
from app.models import Project, Task, User
from app.schemas import ColumnUpdate, CommentCreate, EventKind, TaskCreate, TaskUpdate
from app.services.board_sync import BoardCoordinator, BoardTransaction
from app.services.comment_service import CommentService
from app.services.task_service import TaskService


def make_board(*titles, tasks=None):
    tasks = tasks or {}
    project = Project(
        id=uuid.uuid4(),
        title="Board",
        columns=[{"title": t, "tasks": list(tasks.get(t, []))} for t in titles],
    )
    return project, BoardTransaction(project)


def make_task_obj(column):
    return Task(id=uuid.uuid4(), title="t", column=column, comment_ids=[])


# --- Pure column bookkeeping ---


def test_link_new_task_appends_to_column():
    project, tx = make_board("To Do", "Done")
    first, second = make_task_obj("To Do"), make_task_obj("To Do")
    coordinator = BoardCoordinator()

    coordinator.link_new_task(tx, first)
    coordinator.link_new_task(tx, second)
    coordinator.link_new_task(tx, second)

    assert project.columns[0]["tasks"] == [str(first.id), str(second.id)]
    assert project.columns[1]["tasks"] == []


def test_link_new_task_rejects_unknown_column():
    project, tx = make_board("To Do")
    with pytest.raises(ValidationFailure):
        BoardCoordinator().link_new_task(tx, make_task_obj("to do"))
    assert project.columns == [{"title": "To Do", "tasks": []}]


def test_move_task_removes_from_every_column():
    task = make_task_obj("To Do")
    tid = str(task.id)
    # Drifted: listed in two columns
    project, tx = make_board("To Do", "Doing", "Done", tasks={"To Do": [tid], "Done": [tid]})

    assert BoardCoordinator().move_task(tx, task, "Doing") is True
    assert task.column == "Doing"
    assert [c["tasks"] for c in project.columns] == [[], [tid], []]


def test_move_task_to_same_column_is_noop():
    task = make_task_obj("To Do")
    project, tx = make_board("To Do", tasks={"To Do": [str(task.id)]})
    assert BoardCoordinator().move_task(tx, task, "To Do") is False
    assert project.columns[0]["tasks"] == [str(task.id)]


def test_move_task_to_unknown_column_changes_nothing():
    task = make_task_obj("To Do")
    project, tx = make_board("To Do", tasks={"To Do": [str(task.id)]})
    with pytest.raises(ValidationFailure):
        BoardCoordinator().move_task(tx, task, "Nowhere")
    assert task.column == "To Do"
    assert project.columns[0]["tasks"] == [str(task.id)]


def test_unlink_task_reports_holders():
    task = make_task_obj("To Do")
    tid = str(task.id)
    project, tx = make_board("To Do", "Done", tasks={"Done": [tid]})

    assert BoardCoordinator().unlink_task(tx, task) == ["Done"]
    assert all(c["tasks"] == [] for c in project.columns)


def test_restructure_orders_and_appends_missing_tasks():
    a, b, c = make_task_obj("To Do"), make_task_obj("To Do"), make_task_obj("Done")
    ids = {t: str(t.id) for t in (a, b, c)}
    project, tx = make_board(
        "To Do", "Done", tasks={"To Do": [ids[a], ids[b]], "Done": [ids[c]]}
    )

    BoardCoordinator().restructure_columns(
        tx,
        [a, b, c],
        [
            ColumnUpdate(title="Backlog"),
            ColumnUpdate(title="To Do", tasks=[b.id, c.id]),
            ColumnUpdate(title="Done"),
        ],
    )

    assert project.columns == [
        {"title": "Backlog", "tasks": []},
        {"title": "To Do", "tasks": [ids[b], ids[a]]},
        {"title": "Done", "tasks": [ids[c]]},
    ]


def test_restructure_refuses_to_drop_occupied_column():
    task = make_task_obj("Doing")
    project, tx = make_board("To Do", "Doing", tasks={"Doing": [str(task.id)]})
    before = [dict(c) for c in project.columns]

    with pytest.raises(ValidationFailure):
        BoardCoordinator().restructure_columns(tx, [task], [ColumnUpdate(title="To Do")])
    assert project.columns == before


def test_compute_index_repairs_drift_and_orphans():
    a, b, orphan = make_task_obj("To Do"), make_task_obj("Done"), make_task_obj("Gone")
    ids = {t: str(t.id) for t in (a, b, orphan)}
    project, _ = make_board(
        "To Do", "Done", tasks={"To Do": [ids[b], ids[a], ids[a]], "Done": []}
    )

    rebuilt = BoardCoordinator().compute_index(project, [a, b, orphan])

    assert rebuilt == [
        {"title": "To Do", "tasks": [ids[a], ids[orphan]]},
        {"title": "Done", "tasks": [ids[b]]},
    ]
    assert orphan.column == "To Do"


def test_comment_bookkeeping_keeps_order():
    task = make_task_obj("To Do")
    first, second = uuid.uuid4(), uuid.uuid4()
    coordinator = BoardCoordinator()

    coordinator.attach_comment(task, SimpleNamespace(id=first))
    coordinator.attach_comment(task, SimpleNamespace(id=second))
    assert task.comment_ids == [str(first), str(second)]

    coordinator.detach_comment(task, first)
    assert task.comment_ids == [str(second)]


# --- Against the database ---


class RecordingPublisher:
    """Captures events together with the committed column state at publish time."""

    def __init__(self):
        self.events = []

    async def publish(self, topic, message):
        async with AppAsyncSessionLocal() as other:
            project = (
                await other.execute(select(Project).where(Project.id == uuid.UUID(topic)))
            ).scalar_one_or_none()
            columns = project.columns if project else None
        self.events.append((topic, message, columns))
        return 1


async def _seed(db):
    user = await UserDBHandler().register_user("alice", "alice@x.com", "pw123456", db=db)
    project = await ProjectDBHandler().create_project(
        "Sprint 1", "", user, [], ["To Do", "In Progress", "Done"], db=db
    )
    return user, project


@pytest.mark.asyncio
async def test_events_are_published_after_commit(db):
    user, project = await _seed(db)
    publisher = RecordingPublisher()
    service = TaskService(publisher)

    created = await service.create_task(
        user, TaskCreate(title="Draft release notes", project_id=project.id), db=db
    )
    await service.update_task(
        user, created.id, TaskUpdate.model_validate({"column": "Done"}), db=db
    )

    (_, create_msg, create_cols), (_, update_msg, update_cols) = publisher.events
    assert create_msg["type"] == "task-created"
    assert create_cols[0]["tasks"] == [str(created.id)]
    assert update_msg["type"] == "task-updated"
    assert update_msg["data"]["taskId"] == str(created.id)
    assert update_cols[0]["tasks"] == []
    assert update_cols[2]["tasks"] == [str(created.id)]


@pytest.mark.asyncio
async def test_delete_repairs_drift_and_cascades_comments(db):
    user, project = await _seed(db)
    tasks = TaskService()
    created = await tasks.create_task(
        user, TaskCreate(title="Draft release notes", project_id=project.id), db=db
    )
    populated = await CommentService().add_comment(
        user, created.id, CommentCreate(content="note"), db=db
    )
    comment_id = populated.comments[0].id

    # Simulate drift: the task is also listed under "Done"
    async with AppAsyncSessionLocal() as other:
        drifted = await other.get(Project, project.id)
        columns = [dict(c) for c in drifted.columns]
        columns[2] = {"title": "Done", "tasks": [str(created.id)]}
        drifted.columns = columns
        await other.commit()

    await tasks.delete_task(user, created.id, db=db)

    async with AppAsyncSessionLocal() as other:
        fresh = await other.get(Project, project.id)
        assert all(c["tasks"] == [] for c in fresh.columns)
        assert await CommentDBHandler().get(comment_id, db=other) is None


@pytest.mark.asyncio
async def test_rebuild_index_restores_column_lists(db):
    user, project = await _seed(db)
    created = await TaskService().create_task(
        user, TaskCreate(title="Draft release notes", project_id=project.id, column="In Progress"), db=db
    )
    coordinator = BoardCoordinator()

    async with AppAsyncSessionLocal() as other:
        broken = await other.get(Project, project.id)
        broken.columns = [{"title": c["title"], "tasks": []} for c in broken.columns]
        await other.commit()

    assert await coordinator.rebuild_index(project, db=db) is True
    assert project.columns[1]["tasks"] == [str(created.id)]
    assert await coordinator.rebuild_index(project, db=db) is False


@pytest.mark.asyncio
async def test_lost_update_is_reported_as_concurrent_modification(db):
    user, project = await _seed(db)
    project_id = project.id
    coordinator = BoardCoordinator()
    publisher = RecordingPublisher()

    with pytest.raises(ConcurrentModification):
        async with coordinator.transaction(project, db=db, publisher=publisher) as tx:
            # Another process commits between our read and our write
            async with AppAsyncSessionLocal() as other:
                racing = await other.get(Project, project_id)
                racing.title = "Renamed elsewhere"
                await other.commit()
            tx.project.columns = [{"title": "Only", "tasks": []}]
            tx.emit(EventKind.PROJECT_UPDATED, lambda: {})

    assert publisher.events == []
    async with AppAsyncSessionLocal() as other:
        fresh = await other.get(Project, project_id)
        assert fresh.title == "Renamed elsewhere"
        assert len(fresh.columns) == 3


@pytest.mark.asyncio
async def test_concurrent_creates_and_moves_keep_each_task_in_one_column(db):
    user, project = await _seed(db)
    user_id, project_id = user.id, project.id
    service = TaskService()

    async def create(n):
        async with AppAsyncSessionLocal() as session:
            owner = await session.get(User, user_id)
            created = await service.create_task(
                owner, TaskCreate(title=f"Task {n}", project_id=project_id), db=session
            )
            return created.id

    async def move(task_id):
        async with AppAsyncSessionLocal() as session:
            owner = await session.get(User, user_id)
            await service.update_task(
                owner, task_id, TaskUpdate.model_validate({"column": "Done"}), db=session
            )

    task_ids = await asyncio.gather(*(create(n) for n in range(6)))
    await asyncio.gather(*(move(task_id) for task_id in task_ids[:4]))

    async with AppAsyncSessionLocal() as other:
        fresh = await other.get(Project, project_id)
        columns = {c["title"]: c["tasks"] for c in fresh.columns}

    listed = [task_id for tasks in columns.values() for task_id in tasks]
    assert sorted(listed) == sorted(str(task_id) for task_id in task_ids)
    assert sorted(columns["Done"]) == sorted(str(t) for t in task_ids[:4])
    assert sorted(columns["To Do"]) == sorted(str(t) for t in task_ids[4:])
    assert columns["In Progress"] == []
