"""Registration, password login and logout."""

from hrm.models.security import User
from hrm.security.passwords import hash_password

NEW_USER = {"username": "nora_new", "email": "nora.new@example.com", "password": "long-enough-pw"}


def _bearer(tokens):
    return {"Authorization": f"Bearer {tokens['access_token']}"}


def test_register_creates_lowest_role_account(api):
    response = api.client.post("/auth/register", json=NEW_USER)

    assert response.status_code == 201
    body = response.json()
    assert body["username"] == "nora_new"
    assert body["role"]["id"] == "viewer"
    assert body["department"] is None
    assert "password" not in str(body)


def test_register_duplicate(api):
    assert api.client.post("/auth/register", json=NEW_USER).status_code == 201

    same_email = {**NEW_USER, "username": "nora_two"}
    taken_username = {**NEW_USER, "email": "other@example.com"}
    taken_phone = {**NEW_USER, "username": "nora_3", "email": "n3@example.com", "phone": "+15550000004"}

    for body in (same_email, taken_username, taken_phone):
        response = api.client.post("/auth/register", json=body)
        assert response.status_code == 409
        assert response.json()["detail"] == "User already exists"


def test_register_rejects_short_password(api):
    response = api.client.post("/auth/register", json={**NEW_USER, "password": "short"})
    assert response.status_code == 422


def test_login_by_username_or_email(api):
    api.client.post("/auth/register", json=NEW_USER)

    by_username = api.client.post("/auth/login", json={"login": "nora_new", "password": NEW_USER["password"]})
    by_email = api.client.post("/auth/login", json={"login": "nora.new@example.com", "password": NEW_USER["password"]})

    assert by_username.status_code == 200
    assert by_email.status_code == 200
    me = api.client.get("/auth/me", headers=_bearer(by_email.json()))
    assert me.status_code == 200
    assert me.json()["user"]["username"] == "nora_new"
    assert me.json()["level"] == 1


def test_login_failures_share_one_message(api):
    api.client.post("/auth/register", json=NEW_USER)

    wrong_password = api.client.post("/auth/login", json={"login": "nora_new", "password": "not-the-password"})
    unknown_user = api.client.post("/auth/login", json={"login": "nobody", "password": "whatever-pw"})
    # Seeded accounts have no password and only log in with an OTP.
    otp_only = api.client.post("/auth/login", json={"login": "ed_it", "password": "whatever-pw"})

    for response in (wrong_password, unknown_user, otp_only):
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"


def test_deactivated_account_cannot_log_in(api):
    with api.session_factory() as db:
        user = db.get(User, api.user_id("ed_it"))
        user.password_hash = hash_password("ed-password", rounds=4)
        user.is_active = False
        db.commit()

    response = api.client.post("/auth/login", json={"login": "ed_it", "password": "ed-password"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Account is deactivated"


def test_logout_records_last_seen(api):
    assert api.client.post("/auth/logout").status_code == 401

    response = api.client.post("/auth/logout", headers=api.headers("ed_it"))

    assert response.status_code == 200
    assert response.json() == {"message": "Logged out"}
    with api.session_factory() as db:
        assert db.get(User, api.user_id("ed_it")).last_seen_at is not None
