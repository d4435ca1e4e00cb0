import logging

from app.logging_config import ERROR_LOGGER_NAME


def registration(**overrides):
    data = {
        "name": {"first": "Avi", "last": "Cohen"},
        "phone": "0521234567",
        "email": "a@x.com",
        "password": "secret123",
        "passport": {"passportNumber": "P1234567", "passportCountry": "il"},
    }
    data.update(overrides)
    return data


def test_register_user(client):
    response = client.post("/api/users", json=registration())
    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "a@x.com"
    assert body["name"]["first"] == "Avi"
    assert "createAt" in body
    assert "password" not in body


def test_register_duplicate_email_conflicts(client):
    assert client.post("/api/users", json=registration()).status_code == 201
    response = client.post("/api/users", json=registration(phone="0529999999", email="A@X.com"))
    assert response.status_code == 409
    assert response.json() == {"status": "error", "message": "User already exists"}


def test_register_duplicate_phone_conflicts(client):
    assert client.post("/api/users", json=registration()).status_code == 201
    response = client.post("/api/users", json=registration(email="b@x.com"))
    assert response.status_code == 409


def test_register_cannot_grant_itself_roles(client, db):
    response = client.post("/api/users", json=registration(isAdmin=True, isAgent=True))
    assert response.status_code == 201
    from app.db import crud
    user = crud.get_user_by_email(db, "a@x.com")
    assert user.is_admin is False
    assert user.is_agent is False


def test_register_normalizes_passport_country(client, db):
    client.post("/api/users", json=registration())
    from app.db import crud
    user = crud.get_user_by_email(db, "a@x.com")
    assert user.passport["passportCountry"] == "IL"


def test_register_rejects_invalid_passport_country(client):
    response = client.post("/api/users", json=registration(passport={"passportCountry": "ISR"}))
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid passport country"


def test_register_reports_single_violation(client):
    response = client.post("/api/users", json={"name": {"first": "A"}})
    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "error"
    assert body["message"].startswith('"name.first"')


def test_login_returns_token(client):
    client.post("/api/users", json=registration())
    response = client.post("/api/users/login", json={"email": "a@x.com", "password": "secret123"})
    assert response.status_code == 200
    assert response.text.count(".") == 2


def test_login_bad_password(client):
    client.post("/api/users", json=registration())
    response = client.post("/api/users/login", json={"email": "a@x.com", "password": "wrong-pass"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


def test_get_user_requires_token(client, make_user):
    user = make_user()
    response = client.get(f"/api/users/{user.id}")
    assert response.status_code == 401


def test_invalid_token_is_unauthenticated(client, make_user):
    user = make_user()
    response = client.get(f"/api/users/{user.id}", headers={"x-auth-token": "not-a-token"})
    assert response.status_code == 401


def test_get_user_self_and_staff(client, make_user, headers_for):
    user = make_user()
    agent = make_user(is_agent=True)
    other = make_user()
    assert client.get(f"/api/users/{user.id}", headers=headers_for(user)).status_code == 200
    assert client.get(f"/api/users/{user.id}", headers=headers_for(agent)).status_code == 200
    assert client.get(f"/api/users/{user.id}", headers=headers_for(other)).status_code == 403


def test_get_missing_user(client, make_user, headers_for):
    admin = make_user(is_admin=True)
    assert client.get("/api/users/999", headers=headers_for(admin)).status_code == 404


def test_update_user_conflicting_email(client, make_user, headers_for):
    user = make_user()
    other = make_user()
    response = client.put(f"/api/users/{user.id}", json={"email": other.email}, headers=headers_for(user))
    assert response.status_code == 409


def test_update_user_conflicting_phone(client, make_user, headers_for):
    user = make_user()
    other = make_user()
    response = client.put(f"/api/users/{user.id}", json={"phone": other.phone}, headers=headers_for(user))
    assert response.status_code == 409
    assert response.json()["status"] == "error"


def test_update_user_rehashes_password(client, make_user, headers_for):
    user = make_user()
    response = client.put(f"/api/users/{user.id}", json={"password": "another-secret"}, headers=headers_for(user))
    assert response.status_code == 200
    login = client.post("/api/users/login", json={"email": user.email, "password": "another-secret"})
    assert login.status_code == 200


def test_update_user_rejects_unknown_field(client, make_user, headers_for):
    user = make_user()
    response = client.put(f"/api/users/{user.id}", json={"isAdmin": True}, headers=headers_for(user))
    assert response.status_code == 400


def test_patch_roles_admin_only(client, make_user, headers_for):
    user = make_user()
    admin = make_user(is_admin=True)
    assert client.patch(f"/api/users/{user.id}", json={"isAgent": True}, headers=headers_for(user)).status_code == 403
    response = client.patch(f"/api/users/{user.id}", json={"isAgent": True}, headers=headers_for(admin))
    assert response.status_code == 200
    assert response.json()["isAgent"] is True


def test_delete_user_by_stranger_is_forbidden_even_if_missing(client, make_user, headers_for):
    user = make_user()
    stranger = make_user()
    assert client.delete(f"/api/users/{user.id}", headers=headers_for(stranger)).status_code == 403
    assert client.delete("/api/users/999", headers=headers_for(stranger)).status_code == 403


def test_delete_user_self(client, make_user, headers_for):
    user = make_user()
    email = user.email
    response = client.delete(f"/api/users/{user.id}", headers=headers_for(user))
    assert response.status_code == 200
    assert response.json()["email"] == email


def test_error_response_is_written_to_error_log(client, make_user):
    user = make_user()
    response = client.get(f"/api/users/{user.id}")
    assert response.status_code == 401

    handler = logging.getLogger(ERROR_LOGGER_NAME).handlers[0]
    with open(handler.baseFilename, encoding="utf-8") as fh:
        contents = fh.read()
    assert (
        f"| WARNING | Status: 401, Message: Access denied. No token provided., "
        f"URL: /api/users/{user.id}, Method: GET"
    ) in contents
