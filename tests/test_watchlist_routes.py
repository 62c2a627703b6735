import unittest

from api_support import ApiTestCase


class WatchlistRoutesTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.signup()

    def _create(self, name="Tech"):
        resp = self.client.post("/watchlists", json={"name": name})
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()

    def test_create_and_list_newest_first(self):
        first = self._create("First")
        second = self._create("Second")

        resp = self.client.get("/watchlists")
        self.assertEqual(resp.status_code, 200)
        ids = [w["id"] for w in resp.json()]
        self.assertEqual(ids, [second["id"], first["id"]])
        self.assertEqual(resp.json()[0]["items"], [])

    def test_name_is_trimmed_and_validated(self):
        self.assertEqual(self._create("  Growth  ")["name"], "Growth")
        self.assertEqual(self.client.post("/watchlists", json={"name": "   "}).status_code, 422)
        self.assertEqual(self.client.post("/watchlists", json={"name": "x" * 51}).status_code, 422)

    def test_rename(self):
        watchlist = self._create()
        resp = self.client.patch(f"/watchlists/{watchlist['id']}", json={"name": "Renamed"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["name"], "Renamed")

    def test_add_item_normalizes_symbol(self):
        watchlist = self._create()
        resp = self.client.post(
            f"/watchlists/{watchlist['id']}/items", json={"symbol": " msft ", "notes": "cloud"}
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        items = resp.json()["items"]
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]["symbol"], "MSFT")
        self.assertEqual(items[0]["notes"], "cloud")

    def test_duplicate_item_conflicts(self):
        watchlist = self._create()
        url = f"/watchlists/{watchlist['id']}/items"
        self.assertEqual(self.client.post(url, json={"symbol": "AAPL"}).status_code, 200)

        resp = self.client.post(url, json={"symbol": "aapl"})
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["detail"], "Ticker already exists in this watchlist")

    def test_invalid_symbol_rejected(self):
        watchlist = self._create()
        resp = self.client.post(f"/watchlists/{watchlist['id']}/items", json={"symbol": "12345"})
        self.assertEqual(resp.status_code, 422)

    def test_remove_item_is_idempotent(self):
        watchlist = self._create()
        url = f"/watchlists/{watchlist['id']}/items"
        self.client.post(url, json={"symbol": "NVDA"})

        first = self.client.delete(f"{url}/nvda")
        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.json()["items"], [])

        second = self.client.delete(f"{url}/NVDA")
        self.assertEqual(second.status_code, 200)
        self.assertEqual(second.json()["items"], [])

    def test_delete_watchlist(self):
        watchlist = self._create()
        self.client.post(f"/watchlists/{watchlist['id']}/items", json={"symbol": "AAPL"})

        resp = self.client.delete(f"/watchlists/{watchlist['id']}")
        self.assertEqual(resp.status_code, 204)
        self.assertEqual(self.client.get(f"/watchlists/{watchlist['id']}").status_code, 404)

    def test_other_users_watchlist_is_not_found(self):
        watchlist = self._create()
        other = self.new_client()
        self.signup(client=other, email="other@example.com")

        wid = watchlist["id"]
        self.assertEqual(other.get(f"/watchlists/{wid}").status_code, 404)
        self.assertEqual(other.patch(f"/watchlists/{wid}", json={"name": "x"}).status_code, 404)
        self.assertEqual(other.post(f"/watchlists/{wid}/items", json={"symbol": "AAPL"}).status_code, 404)
        self.assertEqual(other.delete(f"/watchlists/{wid}").status_code, 404)
        self.assertEqual(other.get("/watchlists").json(), [])

    def test_requires_session(self):
        resp = self.new_client().get("/watchlists")
        self.assertEqual(resp.status_code, 401)


if __name__ == "__main__":
    unittest.main()
