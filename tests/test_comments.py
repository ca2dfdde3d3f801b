"""
Comment lifecycle and permissions.
"""


def add_comment(client, user, task, content):
    response = client.post(
        f"/api/tasks/{task['id']}/comments", json={"content": content}, headers=user["headers"]
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_add_comment_returns_populated_task(client, alice, make_project, make_task):
    project = make_project(alice)
    task = make_task(alice, project)

    add_comment(client, alice, task, "first")
    populated = add_comment(client, alice, task, "second")

    assert populated["id"] == task["id"]
    assert [c["content"] for c in populated["comments"]] == ["first", "second"]
    assert populated["comments"][0]["author"]["username"] == "alice"


def test_empty_comment_is_rejected(client, alice, make_project, make_task):
    project = make_project(alice)
    task = make_task(alice, project)
    response = client.post(
        f"/api/tasks/{task['id']}/comments", json={"content": "  "}, headers=alice["headers"]
    )
    assert response.status_code == 400


def test_list_comments_newest_first(client, alice, make_project, make_task):
    project = make_project(alice)
    task = make_task(alice, project)
    for content in ("one", "two", "three"):
        add_comment(client, alice, task, content)

    response = client.get(f"/api/comments/task/{task['id']}", headers=alice["headers"])
    assert response.status_code == 200
    assert [c["content"] for c in response.json()] == ["three", "two", "one"]


def test_author_edits_and_others_get_403(client, alice, bob, make_project, make_task):
    project = make_project(alice, members=[bob["id"]])
    task = make_task(alice, project)
    comment = add_comment(client, bob, task, "bob's note")["comments"][0]

    response = client.put(
        f"/api/comments/{comment['id']}", json={"content": "edited"}, headers=bob["headers"]
    )
    assert response.status_code == 200
    assert response.json()["content"] == "edited"

    response = client.put(
        f"/api/comments/{comment['id']}", json={"content": "nope"}, headers=alice["headers"]
    )
    assert response.status_code == 403

    fetched = client.get(f"/api/comments/{comment['id']}", headers=alice["headers"]).json()
    assert fetched["content"] == "edited"


def test_project_creator_can_delete_any_comment(client, alice, bob, carol, make_project, make_task):
    project = make_project(alice, members=[bob["id"], carol["id"]])
    task = make_task(alice, project)
    comments = add_comment(client, bob, task, "bob's note")["comments"]
    comment_id = comments[0]["id"]

    # Another member is neither author nor creator
    assert client.delete(f"/api/comments/{comment_id}", headers=carol["headers"]).status_code == 403

    assert client.delete(f"/api/comments/{comment_id}", headers=alice["headers"]).status_code == 200
    assert client.get(f"/api/comments/{comment_id}", headers=alice["headers"]).status_code == 404
    assert client.get(f"/api/tasks/{task['id']}", headers=alice["headers"]).json()["comments"] == []


def test_author_can_delete_own_comment(client, alice, bob, make_project, make_task):
    project = make_project(alice, members=[bob["id"]])
    task = make_task(alice, project)
    comment_id = add_comment(client, bob, task, "oops")["comments"][0]["id"]

    assert client.delete(f"/api/comments/{comment_id}", headers=bob["headers"]).status_code == 200


def test_outsider_cannot_read_comments(client, alice, bob, make_project, make_task):
    project = make_project(alice)
    task = make_task(alice, project)
    comment_id = add_comment(client, alice, task, "secret")["comments"][0]["id"]

    assert client.get(f"/api/comments/{comment_id}", headers=bob["headers"]).status_code == 403
    assert client.get(f"/api/comments/task/{task['id']}", headers=bob["headers"]).status_code == 403


def test_missing_comment_is_404(client, alice):
    missing = "00000000-0000-4000-8000-000000000000"
    assert client.get(f"/api/comments/{missing}", headers=alice["headers"]).status_code == 404
    assert client.put(
        f"/api/comments/{missing}", json={"content": "x"}, headers=alice["headers"]
    ).status_code == 404
    assert client.delete(f"/api/comments/{missing}", headers=alice["headers"]).status_code == 404
