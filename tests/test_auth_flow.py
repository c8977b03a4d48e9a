from datetime import timedelta

from sqlalchemy import func, select

from backend.app.models.job import Job
from backend.app.models.user import User
from backend.app.utils.jwt import create_access_token

API = "/api/v1"


def _auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _register(client, **body):
    return client.post(f"{API}/register", json=body)


def test_register_login_and_create_job_example(client):
    r = _register(client, name="A", email="a@x.com", password="secret123", role="employer")
    assert r.status_code == 200, r.text
    assert r.cookies.get("token")

    r = client.post(f"{API}/login", json={"email": "a@x.com", "password": "secret123"})
    assert r.status_code == 200, r.text
    token = r.json()["token"]
    assert isinstance(token, str) and len(token) > 10

    r = client.post(
        f"{API}/job/new",
        headers=_auth_headers(token),
        json={
            "title": "Node Developer (Remote) #1",
            "description": "Build APIs",
            "address": "651 Rr 2, Oquawka, IL, 61469",
            "company": "Acme",
            "industry": ["Information Technology"],
            "jobType": "Full-Time",
            "minEducation": "Bachelors",
            "experience": "Entry level",
            "salary": 50000,
        },
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["success"] is True
    job = body["data"]
    assert job["slug"] == "node-developer-remote-1"
    assert job["positions"] == 1
    assert job["zipcode"] == "61469"
    assert job["latitude"] is not None


def test_register_defaults_to_user_role(client):
    r = _register(client, name="Plain", email="plain@x.com", password="secret123")
    assert r.status_code == 200, r.text
    me = client.get(f"{API}/me", headers=_auth_headers(r.json()["token"]))
    assert me.json()["data"]["role"] == "user"


def test_register_rejects_admin_role(client):
    r = _register(client, name="Sneaky", email="sneaky@x.com", password="secret123", role="admin")
    assert r.status_code == 400, r.text
    assert r.json()["success"] is False


def test_register_short_password(client):
    r = _register(client, name="Short", email="short@x.com", password="123")
    assert r.status_code == 400
    assert "password" in r.json()["message"].lower()


def test_register_duplicate_email(client):
    _register(client, name="One", email="dup@x.com", password="secret123")
    r = _register(client, name="Two", email="DUP@x.com", password="secret123")
    assert r.status_code == 400
    assert r.json()["message"] == "Duplicate email entered"


def test_login_missing_fields(client):
    r = client.post(f"{API}/login", json={"email": "a@x.com"})
    assert r.status_code == 400
    assert r.json()["message"] == "Please enter email & password"


def test_login_invalid_credentials(client):
    _register(client, name="B", email="b@x.com", password="secret123")
    r = client.post(f"{API}/login", json={"email": "b@x.com", "password": "wrong-one"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid email or password"


def test_missing_token_is_rejected(client):
    client.cookies.clear()
    r = client.get(f"{API}/me")
    assert r.status_code == 401
    assert r.json()["message"] == "Please sign in to proceed"


def test_cookie_token_is_accepted(client):
    _register(client, name="Cookie", email="cookie@x.com", password="secret123")
    r = client.get(f"{API}/me")
    assert r.status_code == 200, r.text
    assert r.json()["data"]["email"] == "cookie@x.com"


def test_malformed_token_rejected_without_mutation(client, db_session):
    client.cookies.clear()
    r = client.post(f"{API}/job/new", headers=_auth_headers("not-a-jwt"), json={"title": "x"})
    assert r.status_code == 401
    assert r.json()["message"] == "JSON Web Token is invalid. Try again!"
    assert db_session.execute(select(func.count(Job.id))).scalar_one() == 0


def test_expired_token_rejected_without_mutation(client, db_session, register):
    _, user_id = register(name="Emp", email="emp@x.com", role="employer")
    client.cookies.clear()
    expired = create_access_token({"sub": str(user_id)}, expires_delta=timedelta(seconds=-5))

    r = client.put(f"{API}/me/update", headers=_auth_headers(expired), json={"name": "Changed"})
    assert r.status_code == 401
    assert r.json()["message"] == "JSON Web Token is expired. Try again!"

    db_session.expire_all()
    assert db_session.get(User, user_id).name == "Emp"


def test_token_for_deleted_user_is_rejected(client, db_session, register):
    token, user_id = register(name="Gone", email="gone@x.com")
    db_session.delete(db_session.get(User, user_id))
    db_session.commit()

    r = client.get(f"{API}/me", headers=_auth_headers(token))
    assert r.status_code == 401


def test_logout_clears_cookie(client, register):
    token, _ = register(name="Out", email="out@x.com")
    r = client.get(f"{API}/logout", headers=_auth_headers(token))
    assert r.status_code == 200, r.text
    assert r.json()["message"] == "Log out successfully"
    assert "token=" in r.headers.get("set-cookie", "")


def test_forgot_and_reset_password(client, monkeypatch, register):
    from backend.app.services import emailer

    sent = {}

    def fake_send(*, to_email, reset_url):
        sent["to"] = to_email
        sent["url"] = reset_url

    monkeypatch.setattr(emailer, "send_password_reset_email", fake_send)
    register(name="Forget", email="forget@x.com")

    r = client.post(f"{API}/forgot-password", json={"email": "forget@x.com"})
    assert r.status_code == 200, r.text
    assert r.json()["message"] == "Email sent successfully to: forget@x.com"
    assert sent["to"] == "forget@x.com"
    assert "/api/v1/password/reset/" in sent["url"]
    raw_token = sent["url"].rsplit("/", 1)[-1]

    r = client.put(f"{API}/password/reset/{raw_token}", json={"password": "brandnew1"})
    assert r.status_code == 200, r.text
    assert r.json()["token"]

    # Token is single-use.
    r = client.put(f"{API}/password/reset/{raw_token}", json={"password": "another1"})
    assert r.status_code == 400
    assert r.json()["message"] == "Password Reset token is invalid or has been expired."

    r = client.post(f"{API}/login", json={"email": "forget@x.com", "password": "brandnew1"})
    assert r.status_code == 200, r.text


def test_expired_reset_token(client, db_session, monkeypatch, register):
    from backend.app.services import emailer

    captured = {}
    monkeypatch.setattr(
        emailer,
        "send_password_reset_email",
        lambda *, to_email, reset_url: captured.setdefault("url", reset_url),
    )
    _, user_id = register(name="Late", email="late@x.com")
    client.post(f"{API}/forgot-password", json={"email": "late@x.com"})

    user = db_session.get(User, user_id)
    user.reset_password_expire = user.reset_password_expire - timedelta(hours=1)
    db_session.commit()

    raw_token = captured["url"].rsplit("/", 1)[-1]
    r = client.put(f"{API}/password/reset/{raw_token}", json={"password": "brandnew1"})
    assert r.status_code == 400


def test_forgot_password_unknown_email(client):
    r = client.post(f"{API}/forgot-password", json={"email": "nobody@x.com"})
    assert r.status_code == 404
    assert r.json()["message"] == "No user found with this email."


def test_forgot_password_email_failure_clears_token(client, db_session, monkeypatch, register):
    from backend.app.services import emailer

    def boom(**kwargs):
        raise RuntimeError("SMTP is not configured")

    monkeypatch.setattr(emailer, "send_password_reset_email", boom)
    _, user_id = register(name="NoMail", email="nomail@x.com")

    r = client.post(f"{API}/forgot-password", json={"email": "nomail@x.com"})
    assert r.status_code == 500
    assert r.json()["message"] == "Email is not sent successfully"

    db_session.expire_all()
    assert db_session.get(User, user_id).reset_password_token is None


def test_change_password(client, register):
    token, _ = register(name="Changer", email="changer@x.com")

    r = client.put(
        f"{API}/password-change",
        headers=_auth_headers(token),
        json={"currentPassword": "wrong-pass", "newPassword": "newsecret1"},
    )
    assert r.status_code == 401
    assert r.json()["message"] == "Current password is incorrect"

    r = client.put(
        f"{API}/password-change",
        headers=_auth_headers(token),
        json={"currentPassword": "secret123", "newPassword": "newsecret1"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["token"]

    r = client.post(f"{API}/login", json={"email": "changer@x.com", "password": "newsecret1"})
    assert r.status_code == 200
