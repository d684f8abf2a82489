def test_user_config_view_is_masked_and_full_view_is_not(client, make_user):
    headers = make_user("alice")

    masked = client.get("/api/v1/user-config", headers=headers).json()
    full = client.get("/api/v1/user-config/full", headers=headers).json()

    assert masked["veo"] == {"server": "https://veo.test", "key": "sk-veo****456789"}
    assert full["veo"] == {"server": "https://veo.test", "key": "sk-veo-default-0123456789"}
    assert set(masked["sora"]) == {"server", "key", "character_server", "character_key"}


def test_update_single_service(client, make_user):
    headers = make_user("bob")

    response = client.put("/api/v1/user-config/grok", headers=headers, json={"key": "sk-bob-grok-key-xyz"})

    assert response.status_code == 200
    assert response.json() == {"server": "https://grok.test", "key": "sk-bob****ey-xyz"}
    full = client.get("/api/v1/user-config/full", headers=headers).json()
    assert full["grok"]["key"] == "sk-bob-grok-key-xyz"


def test_unknown_service_is_rejected(client, make_user):
    headers = make_user("carol")

    response = client.put("/api/v1/user-config/dalle", headers=headers, json={"key": "x"})

    assert response.status_code == 400
    assert response.json()["message"].startswith("Invalid service: dalle")


def test_sync_default_copies_into_selected_services(client, make_user):
    headers = make_user("dave")

    response = client.put(
        "/api/v1/user-config/sync-default",
        headers=headers,
        json={"server": "https://relay.test", "key": "sk-relay-000000000", "providers": ["sora", "grok"]},
    )

    assert response.status_code == 200
    assert response.json() == {"providers": ["sora", "grok"]}
    full = client.get("/api/v1/user-config/full", headers=headers).json()
    assert full["sora"]["character_server"] == "https://relay.test"
    assert full["grok"] == {"server": "https://relay.test", "key": "sk-relay-000000000"}
    assert full["veo"]["server"] == "https://veo.test"


def test_user_overrides_are_private(client, make_user):
    first = make_user("erin")
    second = make_user("frank")

    client.put("/api/v1/user-config/veo", headers=first, json={"server": "https://erin.test"})

    assert client.get("/api/v1/user-config/full", headers=second).json()["veo"]["server"] == "https://veo.test"


def test_global_config_read_is_masked_for_users(client, make_user):
    headers = make_user("grace")

    response = client.get("/api/v1/config", headers=headers)

    assert response.status_code == 200
    assert response.json()["gemini_image"]["key"] == "sk-gem****456789"
    assert client.get("/api/v1/config/full", headers=headers).status_code == 403
    assert client.put("/api/v1/config/veo", headers=headers, json={"key": "nope"}).status_code == 403


def test_admin_updates_flow_into_user_fallbacks(client, make_user, admin_headers):
    headers = make_user("heidi")

    updated = client.put(
        "/api/v1/config/veo", headers=admin_headers, json={"server": "https://veo-v2.test", "key": "sk-new-global-key-1"}
    )
    assert updated.status_code == 200
    assert updated.json() == {"server": "https://veo-v2.test", "key": "sk-new****-key-1"}

    full = client.get("/api/v1/user-config/full", headers=headers).json()
    assert full["veo"] == {"server": "https://veo-v2.test", "key": "sk-new-global-key-1"}


def test_admin_bulk_update(client, admin_headers):
    response = client.put(
        "/api/v1/config",
        headers=admin_headers,
        json={"grok": {"server": "https://grok-v2.test"}, "sora": {"character_server": "https://chars.test"}},
    )

    assert response.status_code == 200
    assert response.json()["grok"]["server"] == "https://grok-v2.test"
    full = client.get("/api/v1/config/full", headers=admin_headers).json()
    assert full["sora"]["character_server"] == "https://chars.test"
    assert full["grok"]["key"] == "sk-grok-default-0123456789"


def test_admin_bulk_update_rejects_unknown_service(client, admin_headers):
    response = client.put("/api/v1/config", headers=admin_headers, json={"nope": {"server": "x"}})

    assert response.status_code == 400
