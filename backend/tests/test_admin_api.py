def _seed_video_task(client, provider, headers, task_id, status="queued"):
    provider.on("POST", "https://sora.test/v1/video/create", json={"id": task_id, "status": status})
    assert client.post("/api/v1/video/create", headers=headers, json={"prompt": task_id}).status_code == 200


def _user_id(client, headers):
    return client.get("/api/v1/auth/profile", headers=headers).json()["id"]


def test_admin_lists_users_with_task_counts(client, provider, make_user, admin_headers):
    headers = make_user("alice")
    make_user("bob")
    _seed_video_task(client, provider, headers, "T1")
    _seed_video_task(client, provider, headers, "T2", status="completed")

    listing = client.get("/api/v1/admin/users", headers=admin_headers).json()
    assert listing["total"] == 3
    by_name = {user["username"]: user for user in listing["items"]}
    assert by_name["alice"]["video_task_count"] == 2
    assert by_name["bob"]["video_task_count"] == 0

    admins = client.get("/api/v1/admin/users", headers=admin_headers, params={"role": "admin"}).json()
    assert [user["username"] for user in admins["items"]] == ["admin"]

    search = client.get("/api/v1/admin/users", headers=admin_headers, params={"keyword": "BO"}).json()
    assert [user["username"] for user in search["items"]] == ["bob"]


def test_admin_user_detail_and_tasks(client, provider, make_user, admin_headers):
    headers = make_user("carol")
    _seed_video_task(client, provider, headers, "C1")
    user_id = _user_id(client, headers)

    detail = client.get(f"/api/v1/admin/users/{user_id}", headers=admin_headers).json()
    assert detail["username"] == "carol"
    assert detail["config"]["sora"]["key"] == "sk-sor****456789"

    tasks = client.get(f"/api/v1/admin/users/{user_id}/video-tasks", headers=admin_headers).json()
    assert [task["external_id"] for task in tasks["items"]] == ["C1"]

    images = client.get(f"/api/v1/admin/users/{user_id}/image-tasks", headers=admin_headers).json()
    assert images["total"] == 0

    missing = client.get("/api/v1/admin/users/ffffffffffffffffffffffff", headers=admin_headers)
    assert missing.status_code == 404


def test_admin_resets_another_users_password(client, make_user, admin_headers):
    headers = make_user("dave")
    user_id = _user_id(client, headers)

    reset = client.put(
        f"/api/v1/admin/users/{user_id}/reset-password", headers=admin_headers, json={"new_password": "fresh-pass"}
    )

    assert reset.status_code == 200
    assert client.post("/api/v1/auth/login", json={"username": "dave", "password": "fresh-pass"}).status_code == 200


def test_admin_cannot_reset_own_password_here(client, admin_headers):
    admin_id = _user_id(client, admin_headers)

    response = client.put(
        f"/api/v1/admin/users/{admin_id}/reset-password", headers=admin_headers, json={"new_password": "fresh-pass"}
    )

    assert response.status_code == 400


def test_system_stats(client, provider, make_user, admin_headers):
    headers = make_user("erin")
    _seed_video_task(client, provider, headers, "E1")
    _seed_video_task(client, provider, headers, "E2", status="completed")

    stats = client.get("/api/v1/admin/stats", headers=admin_headers).json()

    assert stats["total_users"] == 2
    assert stats["total_video_tasks"] == 2
    assert stats["total_image_tasks"] == 0
    assert stats["video_by_provider"] == {"sora": 2}
    assert stats["video_by_status"] == {"queued": 1, "completed": 1}


def test_feedback_flow(client, make_user, admin_headers):
    headers = make_user("frank")

    created = client.post(
        "/api/v1/feedback", headers=headers, json={"title": "Upload fails", "content": "The VEO upload errors", "type": "bug"}
    )
    assert created.status_code == 201
    feedback_id = created.json()["id"]
    assert created.json()["status"] == "open"

    mine = client.get("/api/v1/feedback/my", headers=headers).json()
    assert mine["total"] == 1

    assert client.get("/api/v1/feedback/admin/all", headers=headers).status_code == 403

    bugs = client.get("/api/v1/feedback/admin/all", headers=admin_headers, params={"type": "bug", "keyword": "veo"}).json()
    assert [item["id"] for item in bugs["items"]] == [feedback_id]

    replied = client.put(
        f"/api/v1/feedback/admin/{feedback_id}/reply", headers=admin_headers, json={"reply": "Fixed in the next release"}
    )
    assert replied.status_code == 200
    assert replied.json()["status"] == "replied"
    assert replied.json()["replied_by"] == "admin"

    closed = client.put(f"/api/v1/feedback/admin/{feedback_id}/status", headers=admin_headers, json={"status": "closed"})
    assert closed.json()["status"] == "closed"

    stats = client.get("/api/v1/feedback/admin/stats", headers=admin_headers).json()
    assert stats == {"total": 1, "by_status": {"closed": 1}, "by_type": {"bug": 1}}


def test_feedback_reply_to_missing_ticket_is_404(client, admin_headers):
    response = client.put("/api/v1/feedback/admin/nope/reply", headers=admin_headers, json={"reply": "hello"})

    assert response.status_code == 404


def test_user_keyword_matches_wildcards_literally(client, make_user, admin_headers):
    make_user("bob_x")
    make_user("bobax")

    search = client.get("/api/v1/admin/users", headers=admin_headers, params={"keyword": "b_x"}).json()
    assert [user["username"] for user in search["items"]] == ["bob_x"]

    percent = client.get("/api/v1/admin/users", headers=admin_headers, params={"keyword": "%"}).json()
    assert percent["total"] == 0


def test_feedback_keyword_matches_wildcards_literally(client, make_user, admin_headers):
    headers = make_user("olga")
    client.post("/api/v1/feedback", headers=headers, json={"title": "Progress stuck at 50%", "content": "still"})
    client.post("/api/v1/feedback", headers=headers, json={"title": "Progress stuck at 500", "content": "still"})

    found = client.get("/api/v1/feedback/admin/all", headers=admin_headers, params={"keyword": "50%"}).json()

    assert [item["title"] for item in found["items"]] == ["Progress stuck at 50%"]
