from database import USERS, object_id
from permissions import permissions_for_role


def _register(client, email="ruth@gracechurch.org", password="shalom123"):
    return client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "display_name": "Ruth"},
    )


def test_register_creates_reader_without_permissions(client):
    res = _register(client)
    assert res.status_code == 200
    user = res.json()
    assert user["role"] == "reader"
    assert user["permissions"] == permissions_for_role("reader").model_dump()
    assert user["is_active"] is True
    assert "password_hash" not in user


def test_register_rejects_duplicate_email(client):
    _register(client)
    assert _register(client, email="RUTH@gracechurch.org").status_code == 400


def test_bootstrap_email_becomes_admin(client):
    user = _register(client, email="pastor@gracechurch.org").json()
    assert user["role"] == "admin"
    assert all(user["permissions"].values())


def test_login_and_me(client):
    _register(client)
    res = client.post("/api/auth/login", data={"username": "ruth@gracechurch.org", "password": "shalom123"})
    assert res.status_code == 200
    token = res.json()["access_token"]
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).json()
    assert me["email"] == "ruth@gracechurch.org"
    assert me["last_login"] is not None

    res = client.post("/api/auth/login", data={"username": "ruth@gracechurch.org", "password": "wrong"})
    assert res.status_code == 401


def test_bad_token_is_rejected(client):
    res = client.get("/api/auth/me", headers={"Authorization": "Bearer nonsense"})
    assert res.status_code == 401


def test_inactive_user_is_refused(client, make_user):
    user = make_user("admin", is_active=False)
    assert client.get("/api/auth/me", headers=user["headers"]).status_code == 403


def test_role_change_recomputes_all_flags(client, make_user, db):
    admin = make_user("admin")
    target = make_user("reader")

    for role in ["collaborator", "admin", "reader"]:
        res = client.patch(f"/api/admin/users/{target['id']}/role", json={"role": role}, headers=admin["headers"])
        assert res.status_code == 200
        assert res.json()["role"] == role
        assert res.json()["permissions"] == permissions_for_role(role).model_dump()
        stored = db[USERS].find_one({"_id": object_id(target["id"])})
        assert stored["permissions"] == permissions_for_role(role).model_dump()


def test_role_change_rejects_unknown_role(client, make_user):
    admin = make_user("admin")
    target = make_user("reader")
    res = client.patch(f"/api/admin/users/{target['id']}/role", json={"role": "bishop"}, headers=admin["headers"])
    assert res.status_code == 422


def test_stored_permissions_are_authoritative(client, make_user):
    # An admin whose stored record predates a policy change keeps the old flags
    stale_admin = make_user("admin", permissions={"can_manage_users": False})
    assert client.get("/api/admin/users", headers=stale_admin["headers"]).status_code == 403


def test_only_user_managers_manage_users(client, make_user):
    collaborator = make_user("collaborator")
    target = make_user("reader")
    res = client.patch(
        f"/api/admin/users/{target['id']}/role", json={"role": "admin"}, headers=collaborator["headers"]
    )
    assert res.status_code == 403


def test_list_deactivate_and_delete_users(client, make_user):
    admin = make_user("admin")
    target = make_user("reader")

    users = client.get("/api/admin/users", headers=admin["headers"]).json()
    assert [u["id"] for u in users] == [target["id"], admin["id"]]
    assert all("password_hash" not in u for u in users)

    res = client.patch(f"/api/admin/users/{target['id']}/active", json={"is_active": False}, headers=admin["headers"])
    assert res.json()["is_active"] is False
    assert client.get("/api/auth/me", headers=target["headers"]).status_code == 403

    assert client.delete(f"/api/admin/users/{admin['id']}", headers=admin["headers"]).status_code == 400
    assert client.delete(f"/api/admin/users/{target['id']}", headers=admin["headers"]).json() == {"deleted": True}
    assert client.get("/api/auth/me", headers=target["headers"]).status_code == 401
