import unittest
from unittest.mock import patch

from limits import parse

from api_support import ApiTestCase
from middleware.rate_limit import DEFAULT_RATE_LIMIT, limiter


class DefaultRateLimitTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self._enabled = patch.object(limiter, "enabled", True)
        self._enabled.start()
        limiter.reset()

    def tearDown(self):
        limiter.reset()
        self._enabled.stop()
        super().tearDown()

    def test_undecorated_route_gets_default_limit(self):
        allowed = parse(DEFAULT_RATE_LIMIT).amount
        statuses = [self.client.get("/health").status_code for _ in range(allowed)]
        self.assertEqual(set(statuses), {200})

        resp = self.client.get("/health")
        self.assertEqual(resp.status_code, 429)

    def test_disabled_limiter_never_blocks(self):
        limiter.enabled = False
        allowed = parse(DEFAULT_RATE_LIMIT).amount
        statuses = {self.client.get("/health").status_code for _ in range(allowed + 2)}
        self.assertEqual(statuses, {200})


if __name__ == "__main__":
    unittest.main()
