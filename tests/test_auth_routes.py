"""
tests/test_auth_routes.py -- Integration tests for the account endpoints.

These tests exercise the full stack: routing -> form/JSON validation -> cookie
session dependency -> AuthService -> activity log writes.

Fixtures used (from conftest.py):
  - client, user, make_user, login, storage, reset_codes, sent_codes, db_session
"""
import pytest

from app.models import ActivityLog
from app.auth.models import User
from app.services.storage import StorageError

CHROME_ON_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

REGISTRATION = {
    "firstName": "Grace",
    "lastName": "Hopper",
    "email": "grace@example.com",
    "password": "password123",
    "phone": "5550199",
    "location": "Arlington",
}


def _logs(db, user_id):
    db.expire_all()
    return db.query(ActivityLog).filter(ActivityLog.target_user_id == user_id).order_by(ActivityLog.id).all()


class TestCheckEmail:

    def test_existing_email(self, client, user):
        resp = client.post("/check-email", json={"email": "alice@example.com"})
        assert resp.status_code == 200
        assert resp.json() == {"exists": True}

    def test_unknown_email(self, client):
        resp = client.post("/check-email", json={"email": "nobody@example.com"})
        assert resp.json() == {"exists": False}


class TestRegister:

    def test_register_creates_user(self, client, db_session):
        resp = client.post("/register", data=REGISTRATION)
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["status"] == "success"
        assert body["user"]["email"] == "grace@example.com"
        assert body["user"]["phoneNo"] == "5550199"
        assert body["user"]["role"] == "user"
        assert body["user"]["status"] == "active"
        assert "hashedPassword" not in body["user"]

        logs = _logs(db_session, body["user"]["id"])
        assert [(log.action, log.description) for log in logs] == [("Create", "Created new user")]
        assert logs[0].user_id == body["user"]["id"]

    def test_role_and_status_cannot_be_chosen(self, client, db_session):
        resp = client.post("/register", data={**REGISTRATION, "role": "admin", "status": "inActive"})
        assert resp.status_code == 201, resp.text
        assert resp.json()["user"]["role"] == "user"
        assert resp.json()["user"]["status"] == "active"
        assert db_session.query(User).filter(User.email == "grace@example.com").one().role == "user"

    def test_duplicate_email_is_conflict(self, client, user):
        resp = client.post("/register", data={**REGISTRATION, "email": "alice@example.com"})
        assert resp.status_code == 409
        assert resp.json()["detail"] == "Email already exists"

    def test_invalid_email_is_bad_request(self, client):
        resp = client.post("/register", data={**REGISTRATION, "email": "not-an-email"})
        assert resp.status_code == 400

    def test_missing_field_is_bad_request(self, client):
        data = dict(REGISTRATION)
        del data["location"]
        resp = client.post("/register", data=data)
        assert resp.status_code == 400

    def test_profile_image_is_stored(self, client, storage):
        resp = client.post(
            "/register",
            data=REGISTRATION,
            files={"profileImage": ("me.PNG", b"\x89PNG fake", "image/png")},
        )
        assert resp.status_code == 201, resp.text
        img_url = resp.json()["user"]["imgUrl"]
        assert img_url.endswith(".png")
        assert img_url in storage.objects

    def test_non_image_upload_is_rejected(self, client, storage, db_session):
        resp = client.post(
            "/register",
            data=REGISTRATION,
            files={"profileImage": ("notes.txt", b"hello", "text/plain")},
        )
        assert resp.status_code == 400
        assert storage.objects == {}
        assert db_session.query(User).count() == 0


class TestLogin:

    def test_login_sets_session_cookie(self, client, user, db_session):
        resp = client.post(
            "/login",
            json={"email": "alice@example.com", "password": "password123"},
            headers={"User-Agent": CHROME_ON_WINDOWS, "X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["email"] == "alice@example.com"
        assert resp.json()["firstName"] == "Alice"

        set_cookie = resp.headers["set-cookie"].lower()
        assert set_cookie.startswith("token=")
        assert "httponly" in set_cookie
        assert "samesite=strict" in set_cookie

        log = _logs(db_session, user.id)[-1]
        assert (log.action, log.description) == ("Login", "Successfully logged in")
        assert log.device == "Chrome, Windows"
        assert log.ip_address == "203.0.113.7"

    def test_wrong_password(self, client, user):
        resp = client.post("/login", json={"email": "alice@example.com", "password": "wrong-password"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid credentials"

    def test_unknown_user(self, client):
        resp = client.post("/login", json={"email": "ghost@example.com", "password": "password123"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "User not found"

    @pytest.mark.parametrize("status", ["inActive", "delete"])
    def test_only_active_users_may_log_in(self, client, make_user, status):
        make_user(email="dormant@example.com", status=status)
        resp = client.post("/login", json={"email": "dormant@example.com", "password": "password123"})
        assert resp.status_code == 401


class TestSession:

    def test_me_requires_cookie(self, client):
        resp = client.get("/me")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Unauthorized"

    def test_me_rejects_garbage_token(self, client):
        client.cookies.set("token", "not-a-jwt")
        resp = client.get("/me")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid token"

    def test_me_returns_profile(self, client, user, login):
        login(client, "alice@example.com")
        resp = client.get("/me")
        assert resp.status_code == 200
        assert resp.json()["user"]["email"] == "alice@example.com"

    def test_me_denied_once_account_is_inactive(self, client, user, login, db_session):
        login(client, "alice@example.com")
        user.status = "inActive"
        db_session.commit()

        resp = client.get("/me")
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Access denied (user inactive or deleted)"

    def test_verify(self, client, user, login):
        assert client.get("/auth/verify").status_code == 401

        login(client, "alice@example.com")
        resp = client.get("/auth/verify")
        assert resp.status_code == 200
        assert resp.json()["valid"] is True
        assert resp.json()["id"] == user.id

    def test_verify_unknown_account(self, client, user, login, db_session):
        login(client, "alice@example.com")
        user.status = "delete"
        db_session.commit()
        assert client.get("/auth/verify").status_code == 404

    def test_logout_clears_cookie(self, client, user, login, db_session):
        login(client, "alice@example.com")
        resp = client.post("/logout")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Logged out"

        assert client.get("/me").status_code == 401
        actions = [log.action for log in _logs(db_session, user.id)]
        assert actions == ["Login", "Logout"]


class TestForgotPassword:

    def _step(self, client, step, **extra):
        return client.post("/forgot-password", json={"email": "alice@example.com", "step": step, **extra})

    def test_full_reset_flow(self, client, user, sent_codes, login, db_session):
        resp = self._step(client, 1)
        assert resp.status_code == 200, resp.text
        assert resp.json()["message"] == "OTP sent successfully"
        (to_email, code), = sent_codes
        assert to_email == "alice@example.com"
        assert len(code) == 4

        assert self._step(client, 2, otp=code).status_code == 200

        resp = self._step(client, 3, password="brand-new-pass", confirmPassword="brand-new-pass")
        assert resp.status_code == 200, resp.text
        assert resp.json()["message"] == "Password reset successful"

        login(client, "alice@example.com", "brand-new-pass")
        logs = _logs(db_session, user.id)
        assert ("Login", "Changed password through forgot password") in [
            (log.action, log.description) for log in logs
        ]

    def test_wrong_code(self, client, user, sent_codes):
        self._step(client, 1)
        code = sent_codes[0][1]
        wrong = "0000" if code != "0000" else "1111"
        resp = self._step(client, 2, otp=wrong)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid OTP"

    def test_step_three_requires_verified_code(self, client, user, sent_codes):
        self._step(client, 1)
        resp = self._step(client, 3, password="brand-new-pass", confirmPassword="brand-new-pass")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "OTP not verified"

    def test_passwords_must_match(self, client, user, sent_codes):
        self._step(client, 1)
        self._step(client, 2, otp=sent_codes[0][1])
        resp = self._step(client, 3, password="brand-new-pass", confirmPassword="other-pass")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Passwords do not match"

    def test_new_password_must_differ(self, client, user, sent_codes):
        self._step(client, 1)
        self._step(client, 2, otp=sent_codes[0][1])
        resp = self._step(client, 3, password="password123", confirmPassword="password123")
        assert resp.status_code == 402

    def test_code_cannot_be_reused(self, client, user, sent_codes):
        self._step(client, 1)
        code = sent_codes[0][1]
        self._step(client, 2, otp=code)
        self._step(client, 3, password="brand-new-pass", confirmPassword="brand-new-pass")
        assert self._step(client, 2, otp=code).status_code == 400

    def test_invalid_step(self, client, user):
        resp = self._step(client, 7)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid step"

    def test_unknown_email(self, client):
        resp = client.post("/forgot-password", json={"email": "ghost@example.com", "step": 1})
        assert resp.status_code == 401

    def test_email_not_configured(self, client, user, monkeypatch):
        from app.services.email_service import email_service
        monkeypatch.setattr(email_service, "is_configured", lambda: False)
        assert self._step(client, 1).status_code == 503


class TestChangePassword:

    def test_change_password(self, client, user, login, db_session):
        login(client, "alice@example.com")
        resp = client.post("/reset-password", json={
            "oldPassword": "password123",
            "newPassword": "another-pass-1",
            "confirmPassword": "another-pass-1",
        })
        assert resp.status_code == 200, resp.text

        client.post("/logout")
        login(client, "alice@example.com", "another-pass-1")
        assert ("Update", "Updated password") in [(l.action, l.description) for l in _logs(db_session, user.id)]

    def test_old_password_must_match(self, client, user, login):
        login(client, "alice@example.com")
        resp = client.post("/reset-password", json={
            "oldPassword": "wrong-password",
            "newPassword": "another-pass-1",
            "confirmPassword": "another-pass-1",
        })
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Old password is incorrect"

    def test_confirmation_must_match(self, client, user, login):
        login(client, "alice@example.com")
        resp = client.post("/reset-password", json={
            "oldPassword": "password123",
            "newPassword": "another-pass-1",
            "confirmPassword": "another-pass-2",
        })
        assert resp.status_code == 400

    def test_requires_session(self, client):
        resp = client.post("/reset-password", json={
            "oldPassword": "password123",
            "newPassword": "another-pass-1",
            "confirmPassword": "another-pass-1",
        })
        assert resp.status_code == 401


class TestProfile:

    PROFILE = {
        "firstName": "Alicia",
        "lastName": "Smythe",
        "email": "alicia@example.com",
        "location": "Lisbon",
        "phoneNo": "5550111",
    }

    def test_update_profile(self, client, user, login, db_session):
        login(client, "alice@example.com")
        resp = client.post("/update-profile", data=self.PROFILE)
        assert resp.status_code == 200, resp.text
        assert resp.json()["user"]["firstName"] == "Alicia"
        assert resp.json()["user"]["email"] == "alicia@example.com"

        db_session.refresh(user)
        assert user.location == "Lisbon"
        assert ("Update", "Updated profile details") in [
            (l.action, l.description) for l in _logs(db_session, user.id)
        ]

    def test_email_taken_by_someone_else(self, client, user, make_user, login):
        make_user(email="taken@example.com")
        login(client, "alice@example.com")
        resp = client.post("/update-profile", data={**self.PROFILE, "email": "taken@example.com"})
        assert resp.status_code == 409

    def test_keeping_own_email_is_allowed(self, client, user, login):
        login(client, "alice@example.com")
        resp = client.post("/update-profile", data={**self.PROFILE, "email": "alice@example.com"})
        assert resp.status_code == 200

    def test_new_image_replaces_old(self, client, user, login, storage):
        login(client, "alice@example.com")
        first = client.post(
            "/update-profile", data=self.PROFILE,
            files={"profileImage": ("a.jpg", b"one", "image/jpeg")},
        ).json()["user"]["imgUrl"]
        second = client.post(
            "/update-profile", data=self.PROFILE,
            files={"profileImage": ("b.jpg", b"two", "image/jpeg")},
        ).json()["user"]["imgUrl"]

        assert first != second
        assert storage.deleted == [first]
        assert list(storage.objects) == [second]

    def test_update_without_image_keeps_it(self, client, user, login, storage):
        login(client, "alice@example.com")
        img = client.post(
            "/update-profile", data=self.PROFILE,
            files={"profileImage": ("a.jpg", b"one", "image/jpeg")},
        ).json()["user"]["imgUrl"]
        resp = client.post("/update-profile", data=self.PROFILE)
        assert resp.json()["user"]["imgUrl"] == img
        assert storage.deleted == []

    def test_failed_upload_keeps_old_image(self, client, user, login, storage, db_session, monkeypatch):
        login(client, "alice@example.com")
        old = client.post(
            "/update-profile", data=self.PROFILE,
            files={"profileImage": ("a.jpg", b"one", "image/jpeg")},
        ).json()["user"]["imgUrl"]

        def broken_upload(data, original_filename, content_type):
            raise StorageError("Failed to upload image")

        monkeypatch.setattr(storage, "upload_image", broken_upload)
        resp = client.post(
            "/update-profile", data={**self.PROFILE, "firstName": "Changed"},
            files={"profileImage": ("b.jpg", b"two", "image/jpeg")},
        )
        assert resp.status_code == 500
        assert resp.json()["detail"] == "Failed to upload image"
        assert storage.deleted == []
        assert old in storage.objects

        db_session.refresh(user)
        assert user.img_url == old
        assert user.first_name == "Alicia"


class TestDeleteAccount:

    def test_soft_delete(self, client, user, login, db_session):
        login(client, "alice@example.com")
        resp = client.put("/delete")
        assert resp.status_code == 200

        db_session.refresh(user)
        assert user.status == "delete"
        assert client.get("/me").status_code == 401

        resp = client.post("/login", json={"email": "alice@example.com", "password": "password123"})
        assert resp.status_code == 401
        assert [l.action for l in _logs(db_session, user.id)][-1] == "Delete"
