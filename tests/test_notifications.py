"""
Notification side effects and the read/unread lifecycle.
"""

import pytest

from app.services.notification_service import extract_mentions


def notifications(client, user, **params):
    response = client.get("/api/notifications", params=params, headers=user["headers"])
    assert response.status_code == 200
    return response.json()


@pytest.mark.parametrize(
    "content, expected",
    [
        ("hey @bob, look", ["bob"]),
        ("@carol and @bob and @carol again", ["carol", "bob"]),
        ("mail bob@x.com is not a mention", []),
        ("trailing dot @bob.", ["bob"]),
        ("no mentions here", []),
    ],
)
def test_extract_mentions(content, expected):
    assert extract_mentions(content) == expected


def test_project_invitation_on_create_and_member_add(client, alice, bob, carol, make_project):
    project = make_project(alice, members=[bob["id"]])
    (invite,) = notifications(client, bob)
    assert invite["type"] == "Project Invitation"
    assert invite["relatedEntity"] == {"kind": "project", "id": project["id"]}
    assert notifications(client, alice) == []

    client.post(
        f"/api/projects/{project['id']}/members", json={"email": "carol@x.com"}, headers=alice["headers"]
    )
    assert [n["type"] for n in notifications(client, carol)] == ["Project Invitation"]


def test_assignment_notifies_new_assignees_only(client, alice, bob, make_project, make_task):
    project = make_project(alice, members=[bob["id"]])
    task = make_task(alice, project, assignees=[alice["id"], bob["id"]])

    assert notifications(client, alice) == []
    assigned = [n for n in notifications(client, bob) if n["type"] == "Task Assignment"]
    assert len(assigned) == 1
    assert assigned[0]["relatedEntity"] == {"kind": "task", "id": task["id"]}

    # Re-sending the same assignees adds nobody
    client.put(
        f"/api/tasks/{task['id']}", json={"assignees": [bob["id"]]}, headers=alice["headers"]
    )
    assert len([n for n in notifications(client, bob) if n["type"] == "Task Assignment"]) == 1


def test_comment_and_mention_notifications(client, alice, bob, carol, make_project, make_task):
    project = make_project(alice, members=[bob["id"], carol["id"]])
    task = make_task(alice, project, assignees=[bob["id"]])

    client.post(
        f"/api/tasks/{task['id']}/comments",
        json={"content": "@carol and @bob please check"},
        headers=alice["headers"],
    )

    bob_types = [n["type"] for n in notifications(client, bob)]
    carol_types = [n["type"] for n in notifications(client, carol)]
    # Bob is assignee and mentioned: only the mention
    assert bob_types.count("Mention") == 1
    assert "Comment" not in bob_types
    assert carol_types.count("Mention") == 1

    client.post(
        f"/api/tasks/{task['id']}/comments", json={"content": "done"}, headers=bob["headers"]
    )
    alice_types = [n["type"] for n in notifications(client, alice)]
    assert alice_types == ["Comment"]


def test_mark_read_and_read_all(client, alice, bob, carol, make_project):
    make_project(alice, "One", members=[bob["id"]])
    make_project(alice, "Two", members=[bob["id"]])
    first, second = notifications(client, bob)

    response = client.put(f"/api/notifications/{first['id']}/read", headers=bob["headers"])
    assert response.status_code == 200
    assert response.json()["read"] is True
    assert [n["id"] for n in notifications(client, bob, unread="true")] == [second["id"]]

    # Someone else's notification
    assert client.put(f"/api/notifications/{second['id']}/read", headers=carol["headers"]).status_code == 403

    response = client.put("/api/notifications/read-all", headers=bob["headers"])
    assert response.status_code == 200
    assert notifications(client, bob, unread="true") == []
