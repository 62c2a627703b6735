import unittest

from api_support import ApiTestCase
from services.auth import SESSION_COOKIE_NAME, decode_session_token


class SignupTests(ApiTestCase):
    def test_signup_sets_session_cookie(self):
        resp = self.client.post(
            "/auth/signup", json={"email": "new@example.com", "password": "password123"}
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()
        self.assertTrue(body["ok"])
        self.assertEqual(body["user"]["email"], "new@example.com")
        self.assertNotIn("hashed_password", body["user"])

        set_cookie = resp.headers["set-cookie"]
        self.assertIn(f"{SESSION_COOKIE_NAME}=", set_cookie)
        self.assertIn("HttpOnly", set_cookie)

        token = resp.cookies.get(SESSION_COOKIE_NAME)
        payload = decode_session_token(token)
        self.assertEqual(payload["sub"], str(body["user"]["id"]))

    def test_duplicate_email_conflicts(self):
        self.signup(email="dup@example.com")
        resp = self.new_client().post(
            "/auth/signup", json={"email": "dup@example.com", "password": "password123"}
        )
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["detail"], "Email already in use")

    def test_short_password_rejected(self):
        resp = self.client.post(
            "/auth/signup", json={"email": "short@example.com", "password": "abc"}
        )
        self.assertEqual(resp.status_code, 422)

    def test_invalid_email_rejected(self):
        resp = self.client.post(
            "/auth/signup", json={"email": "not-an-email", "password": "password123"}
        )
        self.assertEqual(resp.status_code, 422)


class LoginTests(ApiTestCase):
    def test_login_with_valid_credentials(self):
        self.signup(email="login@example.com", password="password123")
        other = self.new_client()
        resp = other.post(
            "/auth/login", json={"email": "login@example.com", "password": "password123"}
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["email"], "login@example.com")

        me = other.get("/me")
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["user"]["email"], "login@example.com")

    def test_wrong_password(self):
        self.signup(email="login@example.com", password="password123")
        resp = self.new_client().post(
            "/auth/login", json={"email": "login@example.com", "password": "wrong-password"}
        )
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["detail"], "Invalid credentials")

    def test_unknown_email(self):
        resp = self.client.post(
            "/auth/login", json={"email": "ghost@example.com", "password": "password123"}
        )
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["detail"], "Invalid credentials")


class SessionTests(ApiTestCase):
    def test_me_requires_cookie(self):
        resp = self.client.get("/me")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["detail"], "Not authenticated")

    def test_garbage_cookie_is_rejected(self):
        client = self.new_client()
        client.cookies.set(SESSION_COOKIE_NAME, "not-a-jwt")
        resp = client.get("/me")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["detail"], "Invalid session")

    def test_logout_clears_session(self):
        self.signup()
        self.assertEqual(self.client.get("/me").status_code, 200)

        resp = self.client.post("/auth/logout")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"ok": True})
        self.assertEqual(self.client.get("/me").status_code, 401)

    def test_health(self):
        resp = self.client.get("/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.text, "ok")


if __name__ == "__main__":
    unittest.main()
