"""API tests for registration, login, logout, session handling, guards, and rate limits."""

import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from api_support import (
    ADMIN_PASSWORD,
    API,
    CLIENT_PASSWORD,
    COOKIE_NAME,
    ApiTestCase,
)
from contractdesk.core.security import unsign_session_id
from contractdesk.models.user import ROLE_ADMIN, User


class TestRegister(ApiTestCase):
    def test_register_creates_client_and_signs_in(self) -> None:
        client = self.new_client()
        resp = self.register(client)
        self.assertEqual(resp.status_code, 201, resp.text)
        body = resp.json()
        self.assertEqual(body["username"], "client1")
        self.assertEqual(body["email"], "client1@example.com")
        self.assertEqual(body["role"], "client")
        self.assertNotIn("password", body)

        cookie = resp.headers["set-cookie"]
        self.assertIn(f"{COOKIE_NAME}=", cookie)
        self.assertIn("HttpOnly", cookie)
        self.assertIn("Secure", cookie)
        self.assertIn("SameSite=strict", cookie)
        self.assertIn("Path=/", cookie)
        self.assertIn("Max-Age=86400", cookie)

        me = client.get(f"{API}/current-user")
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["id"], body["id"])

    def test_role_cannot_be_self_assigned(self) -> None:
        client = self.new_client()
        resp = client.post(
            f"{API}/register",
            json={
                "username": "sneaky",
                "email": "sneaky@example.com",
                "password": CLIENT_PASSWORD,
                "role": "admin",
            },
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["role"], "client")

    def test_password_is_stored_hashed(self) -> None:
        self.register(self.new_client())
        with self.db() as db:
            user = db.query(User).filter(User.username == "client1").one()
            self.assertNotIn(CLIENT_PASSWORD, user.password)
            self.assertIn(".", user.password)

    def test_duplicate_username_rejected(self) -> None:
        first = self.register(self.new_client())
        second = self.register(self.new_client(), email="other@example.com")
        self.assertEqual(first.status_code, 201)
        self.assertEqual(second.status_code, 400)
        self.assertEqual(second.json()["detail"], "Username already taken")

    def test_duplicate_email_rejected(self) -> None:
        self.register(self.new_client())
        resp = self.register(self.new_client(), username="client2")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Email already registered")

    def test_registration_rate_limit_counts_every_attempt(self) -> None:
        client = self.new_client()
        self.assertEqual(self.register(client, password="weak").status_code, 400)
        self.assertEqual(self.register(client, password="weak").status_code, 400)
        ok = self.register(client)
        self.assertEqual(ok.status_code, 201)
        self.assertEqual(ok.headers["RateLimit-Remaining"], "0")
        blocked = self.register(client, username="client2", email="c2@example.com")
        self.assertEqual(blocked.status_code, 429)
        self.assertIn("Too many registration attempts", blocked.json()["detail"])
        self.assertGreater(blocked.json()["retry_after"], 0)
        self.assertIn("Retry-After", blocked.headers)
        self.assertEqual(blocked.headers["RateLimit-Limit"], "3")

    def test_malformed_json_still_counts_toward_limit(self) -> None:
        client = self.new_client()
        for _ in range(3):
            resp = client.post(
                f"{API}/register",
                content=b"{\"username\": ",
                headers={"Content-Type": "application/json"},
            )
            self.assertEqual(resp.status_code, 400)
            self.assertEqual(resp.json()["detail"], "Validation error: JSON decode error")
        self.assertEqual(self.register(client).status_code, 429)

    def test_uniqueness_race_at_insert_is_400(self) -> None:
        self.register(self.new_client())
        with patch("contractdesk.api.v1.auth.get_user_by_username", return_value=None), patch(
            "contractdesk.api.v1.auth.get_user_by_email", return_value=None
        ):
            resp = self.register(self.new_client())
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Username or email already taken")
        self.assertNotIn("set-cookie", resp.headers)
        with self.db() as db:
            self.assertEqual(db.query(User).count(), 1)


class TestRegisterValidation(ApiTestCase):
    """Shape checks run before storage; the registration limit is raised out of the way."""

    settings_overrides = {"REGISTER_RATE_LIMIT_MAX": 100}

    def test_weak_password_rejected_with_message(self) -> None:
        cases = {
            "short1A": "at least 8 characters",
            "alllowercase1": "uppercase",
            "ALLUPPERCASE1": "lowercase",
            "NoDigitsHere": "number",
        }
        client = self.new_client()
        for password, fragment in cases.items():
            resp = self.register(client, password=password)
            self.assertEqual(resp.status_code, 400, password)
            self.assertIn(fragment, resp.json()["detail"])
            self.assertIn('"password"', resp.json()["detail"])
        with self.db() as db:
            self.assertEqual(db.query(User).count(), 0)

    def test_invalid_email_rejected(self) -> None:
        client = self.new_client()
        for email in ("not-an-email", "a@b..c", '"x"@-bad-.com', "two@@example.com"):
            resp = self.register(client, email=email)
            self.assertEqual(resp.status_code, 400, email)
            self.assertEqual(
                resp.json()["detail"], 'Validation error: Invalid email address at "email"'
            )

    def test_email_surrounding_whitespace_trimmed(self) -> None:
        resp = self.register(self.new_client(), email="  client1@example.com ")
        self.assertEqual(resp.status_code, 201, resp.text)
        self.assertEqual(resp.json()["email"], "client1@example.com")

    def test_short_username_rejected(self) -> None:
        resp = self.register(self.new_client(), username="ab")
        self.assertEqual(resp.status_code, 400)
        self.assertIn('"username"', resp.json()["detail"])

    def test_missing_field_rejected(self) -> None:
        resp = self.new_client().post(f"{API}/register", json={"username": "client1"})
        self.assertEqual(resp.status_code, 400)
        self.assertTrue(resp.json()["detail"].startswith("Validation error:"))


class TestClientLogin(ApiTestCase):
    def test_login_success(self) -> None:
        self.register(self.new_client())
        client = self.new_client()
        resp = client.post(
            f"{API}/client-login",
            json={"username": "client1", "password": CLIENT_PASSWORD},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["username"], "client1")
        self.assertEqual(resp.json()["role"], "client")
        self.assertEqual(client.get(f"{API}/current-user").status_code, 200)

    def test_bad_credentials(self) -> None:
        self.register(self.new_client())
        client = self.new_client()
        wrong_password = client.post(
            f"{API}/client-login", json={"username": "client1", "password": "WrongPassw0rd"}
        )
        unknown_user = client.post(
            f"{API}/client-login", json={"username": "nobody", "password": CLIENT_PASSWORD}
        )
        self.assertEqual(wrong_password.status_code, 401)
        self.assertEqual(unknown_user.status_code, 401)
        self.assertEqual(wrong_password.json()["detail"], "Invalid credentials")
        self.assertEqual(client.get(f"{API}/current-user").status_code, 401)

    def test_login_regenerates_session_id(self) -> None:
        client = self.new_client()
        registered = self.register(client)
        before = registered.cookies.get(COOKIE_NAME)
        login = client.post(
            f"{API}/client-login", json={"username": "client1", "password": CLIENT_PASSWORD}
        )
        after = login.cookies.get(COOKIE_NAME)
        self.assertIsNotNone(before)
        self.assertIsNotNone(after)
        self.assertNotEqual(before, after)

        secret = self.settings.SESSION_SECRET.get_secret_value()
        old_sid = unsign_session_id(before, secret)
        new_sid = unsign_session_id(after, secret)
        self.assertIsNone(self.services.session_store.read(old_sid))
        self.assertIsNotNone(self.services.session_store.read(new_sid))

    def test_cookie_value_authenticates_only_when_untampered(self) -> None:
        value = self.register(self.new_client()).cookies.get(COOKIE_NAME)
        genuine = TestClient(self.app, base_url="https://testserver", cookies={COOKIE_NAME: value})
        self.assertEqual(genuine.get(f"{API}/current-user").status_code, 200)
        tampered_value = ("x" if value[0] != "x" else "y") + value[1:]
        tampered = TestClient(
            self.app, base_url="https://testserver", cookies={COOKIE_NAME: tampered_value}
        )
        self.assertEqual(tampered.get(f"{API}/current-user").status_code, 401)


class TestLoginRateLimit(ApiTestCase):
    def _login(self, client, password: str):
        return client.post(
            f"{API}/client-login", json={"username": "client1", "password": password}
        )

    def test_sixth_attempt_rejected_before_credential_check(self) -> None:
        self.register(self.new_client())
        client = self.new_client()
        for _ in range(5):
            self.assertEqual(self._login(client, "WrongPassw0rd").status_code, 401)
        blocked = self._login(client, CLIENT_PASSWORD)
        self.assertEqual(blocked.status_code, 429)
        self.assertIn("Too many login attempts", blocked.json()["detail"])
        self.assertGreater(int(blocked.headers["Retry-After"]), 0)

    def test_successful_logins_do_not_consume_budget(self) -> None:
        self.register(self.new_client())
        client = self.new_client()
        for _ in range(4):
            self.assertEqual(self._login(client, "WrongPassw0rd").status_code, 401)
        for _ in range(3):
            self.assertEqual(self._login(client, CLIENT_PASSWORD).status_code, 200)
        self.assertEqual(self._login(client, "WrongPassw0rd").status_code, 401)
        self.assertEqual(self._login(client, CLIENT_PASSWORD).status_code, 429)

    def test_limit_applies_before_body_is_decoded(self) -> None:
        client = self.new_client()
        for _ in range(5):
            self.assertEqual(self._login(client, "WrongPassw0rd").status_code, 401)
        resp = client.post(
            f"{API}/client-login",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(resp.status_code, 429)

    def test_admin_and_client_login_share_budget(self) -> None:
        self.create_admin()
        client = self.new_client()
        for _ in range(5):
            resp = client.post(
                f"{API}/admin-login", json={"username": "admin", "password": "WrongPassw0rd"}
            )
            self.assertEqual(resp.status_code, 401)
        self.assertEqual(self._login(client, CLIENT_PASSWORD).status_code, 429)


class TestAdminLogin(ApiTestCase):
    def test_admin_login_success(self) -> None:
        self.create_admin()
        client = self.new_client()
        resp = client.post(
            f"{API}/admin-login", json={"username": "admin", "password": ADMIN_PASSWORD}
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(set(resp.json()), {"id", "username", "role"})
        self.assertEqual(resp.json()["role"], "admin")
        self.assertEqual(client.get(f"{API}/contracts").status_code, 200)

    def test_non_admin_forbidden(self) -> None:
        self.register(self.new_client())
        client = self.new_client()
        resp = client.post(
            f"{API}/admin-login", json={"username": "client1", "password": CLIENT_PASSWORD}
        )
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["detail"], "Access denied. Admin only.")

    def test_bad_credentials(self) -> None:
        self.create_admin()
        resp = self.new_client().post(
            f"{API}/admin-login", json={"username": "admin", "password": "WrongPassw0rd"}
        )
        self.assertEqual(resp.status_code, 401)

    def test_existing_session_destroyed_even_on_failure(self) -> None:
        self.create_admin()
        client = self.new_client()
        value = self.register(client).cookies.get(COOKIE_NAME)
        sid = unsign_session_id(value, self.settings.SESSION_SECRET.get_secret_value())
        resp = client.post(
            f"{API}/admin-login", json={"username": "admin", "password": "WrongPassw0rd"}
        )
        self.assertEqual(resp.status_code, 401)
        self.assertIsNone(self.services.session_store.read(sid))
        cleared = resp.headers["set-cookie"]
        self.assertIn(f"{COOKIE_NAME}=", cleared)
        self.assertIn("Max-Age=0", cleared)
        self.assertEqual(client.get(f"{API}/current-user").status_code, 401)

    def test_non_admin_attempt_clears_cookie(self) -> None:
        client = self.new_client()
        self.register(client)
        resp = client.post(
            f"{API}/admin-login", json={"username": "client1", "password": CLIENT_PASSWORD}
        )
        self.assertEqual(resp.status_code, 403)
        self.assertIn("Max-Age=0", resp.headers["set-cookie"])
        self.assertEqual(resp.headers["RateLimit-Remaining"], "4")

    def test_failure_without_session_sets_no_cookie(self) -> None:
        self.create_admin()
        resp = self.new_client().post(
            f"{API}/admin-login", json={"username": "admin", "password": "WrongPassw0rd"}
        )
        self.assertEqual(resp.status_code, 401)
        self.assertNotIn("set-cookie", resp.headers)


class TestGuards(ApiTestCase):
    def test_admin_route_anonymous_is_401(self) -> None:
        self.assertEqual(self.new_client().get(f"{API}/contracts").status_code, 401)

    def test_admin_route_with_client_session_is_403(self) -> None:
        client = self.new_client()
        self.register(client)
        resp = client.get(f"{API}/contracts")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["detail"], "Access denied")

    def test_admin_flag_is_session_scoped_not_role_derived(self) -> None:
        client = self.new_client()
        self.register(client)
        self.set_role("client1", ROLE_ADMIN)

        # Same client session: role is now admin but the session was not opened via admin login.
        self.assertEqual(client.get(f"{API}/contracts").status_code, 403)
        relogin = client.post(
            f"{API}/client-login", json={"username": "client1", "password": CLIENT_PASSWORD}
        )
        self.assertEqual(relogin.status_code, 200)
        self.assertEqual(client.get(f"{API}/contracts").status_code, 403)

        admin_login = client.post(
            f"{API}/admin-login", json={"username": "client1", "password": CLIENT_PASSWORD}
        )
        self.assertEqual(admin_login.status_code, 200)
        self.assertEqual(client.get(f"{API}/contracts").status_code, 200)

    def test_admin_session_loses_access_when_role_revoked(self) -> None:
        client = self.admin_client()
        self.set_role("admin", "client")
        self.assertEqual(client.get(f"{API}/contracts").status_code, 403)

    def test_client_login_drops_admin_flag(self) -> None:
        client = self.admin_client()
        resp = client.post(
            f"{API}/client-login", json={"username": "admin", "password": ADMIN_PASSWORD}
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(client.get(f"{API}/contracts").status_code, 403)

    def test_client_route_requires_session(self) -> None:
        self.assertEqual(self.new_client().get(f"{API}/client/contracts").status_code, 401)

    def test_current_user_anonymous(self) -> None:
        resp = self.new_client().get(f"{API}/current-user")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["detail"], "Authentication required")


class TestLogout(ApiTestCase):
    def test_logout_destroys_session_and_is_idempotent(self) -> None:
        client = self.new_client()
        value = self.register(client).cookies.get(COOKIE_NAME)
        sid = unsign_session_id(value, self.settings.SESSION_SECRET.get_secret_value())

        first = client.post(f"{API}/logout")
        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.content, b"")
        self.assertIsNone(self.services.session_store.read(sid))
        self.assertEqual(client.get(f"{API}/current-user").status_code, 401)

        second = client.post(f"{API}/logout")
        self.assertEqual(second.status_code, 200)

    def test_logout_without_session(self) -> None:
        self.assertEqual(self.new_client().post(f"{API}/logout").status_code, 200)


if __name__ == "__main__":
    unittest.main()
