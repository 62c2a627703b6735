import unittest
from unittest.mock import ANY, patch

from sqlalchemy.dialects import postgresql

from api_support import ApiTestCase
from database import SessionLocal
from models.portfolio import PortfolioTransaction
from services import portfolio_service


class PortfolioRoutesTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.signup()
        resp = self.client.post("/portfolios", json={"name": "Main"})
        self.assertEqual(resp.status_code, 201, resp.text)
        self.portfolio = resp.json()

    def _tx(self, **payload):
        return self.client.post(f"/portfolios/{self.portfolio['id']}/transactions", json=payload)

    def _tx_count(self):
        db = SessionLocal()
        try:
            return db.query(PortfolioTransaction).count()
        finally:
            db.close()

    def test_new_portfolio_is_empty(self):
        self.assertEqual(self.portfolio["name"], "Main")
        self.assertEqual(self.portfolio["transactions"], [])
        self.assertEqual(self.portfolio["positions"], [])

    def test_buy_defaults_and_normalizes(self):
        resp = self._tx(symbol="avgo", quantity=2, price=100, executed_at="2026-03-01T15:30:00Z")
        self.assertEqual(resp.status_code, 201, resp.text)
        body = resp.json()
        self.assertEqual(body["type"], "BUY")
        self.assertEqual(body["symbol"], "AVGO")
        self.assertEqual(body["portfolio_id"], self.portfolio["id"])

    def test_oversell_is_rejected_and_not_written(self):
        self._tx(symbol="AVGO", type="BUY", quantity=2, price=100, executed_at="2026-03-01T00:00:00Z")
        before = self._tx_count()

        resp = self._tx(symbol="AVGO", type="SELL", quantity=5, price=120)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(
            resp.json()["detail"],
            "Cannot sell 5 shares of AVGO. Only 2 shares available.",
        )
        self.assertEqual(self._tx_count(), before)

    def test_sell_without_holding_is_rejected(self):
        resp = self._tx(symbol="TSLA", type="SELL", quantity=1, price=200)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Cannot sell 1 shares of TSLA. Only 0 shares available.")

    def test_invalid_payloads(self):
        self.assertEqual(self._tx(symbol="AAPL", quantity=0, price=1).status_code, 422)
        self.assertEqual(self._tx(symbol="AAPL", quantity=1, price=-1).status_code, 422)
        self.assertEqual(self._tx(symbol="AAPL", type="HOLD", quantity=1, price=1).status_code, 422)
        self.assertEqual(self._tx(symbol="99", quantity=1, price=1).status_code, 422)

    def test_summary_with_prices(self):
        self.seed_prices("AAPL", [140.0, 145.0, 150.0])
        self._tx(symbol="AAPL", type="BUY", quantity=10, price=100, executed_at="2026-03-01T00:00:00Z")
        self._tx(symbol="AAPL", type="SELL", quantity=4, price=150, executed_at="2026-03-02T00:00:00Z")
        self._tx(symbol="MSFT", type="BUY", quantity=1, price=50, executed_at="2026-03-03T00:00:00Z")

        resp = self.client.get(f"/portfolios/{self.portfolio['id']}/summary")
        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()
        self.assertEqual(body["portfolio"], {"id": self.portfolio["id"], "name": "Main"})

        positions = {p["symbol"]: p for p in body["positions"]}
        self.assertEqual(positions["AAPL"]["quantity"], 6)
        self.assertEqual(positions["AAPL"]["average_cost"], 100)
        self.assertEqual(positions["AAPL"]["latest_close"], 150)
        self.assertEqual(positions["AAPL"]["market_value"], 900)
        self.assertEqual(positions["AAPL"]["unrealized_pnl"], 300)
        self.assertIsNone(positions["MSFT"]["market_value"])

        summary = body["summary"]
        self.assertEqual(summary["total_market_value"], 900)
        self.assertEqual(summary["total_cost_basis"], 600)
        self.assertEqual(summary["unrealized_pnl"], 300)
        self.assertEqual(summary["realized_pnl"], 200)
        self.assertEqual(summary["positions_count"], 2)
        self.assertEqual(summary["transactions_count"], 3)
        self.assertEqual(summary["concentration"], [
            {"symbol": "AAPL", "weight_pct": 100.0, "market_value": 900.0},
        ])

    def test_list_includes_positions_and_history(self):
        self._tx(symbol="AAPL", quantity=1, price=10, executed_at="2026-03-01T00:00:00Z")
        self._tx(symbol="AAPL", quantity=1, price=20, executed_at="2026-03-05T00:00:00Z")

        resp = self.client.get("/portfolios")
        self.assertEqual(resp.status_code, 200)
        portfolios = resp.json()
        self.assertEqual(len(portfolios), 1)
        portfolio = portfolios[0]
        prices = [tx["price"] for tx in portfolio["transactions"]]
        self.assertEqual(prices, [20, 10])
        self.assertEqual(portfolio["positions"][0]["quantity"], 2)
        self.assertEqual(portfolio["positions"][0]["average_cost"], 15)
        self.assertEqual(portfolio["summary"]["transactions_count"], 2)

    def test_delete_transaction(self):
        tx = self._tx(symbol="AAPL", quantity=1, price=10).json()
        url = f"/portfolios/{self.portfolio['id']}/transactions/{tx['id']}"

        self.assertEqual(self.client.delete(url).status_code, 204)
        resp = self.client.delete(url)
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["detail"], "Transaction not found")

    def test_delete_portfolio(self):
        self._tx(symbol="AAPL", quantity=1, price=10)
        pid = self.portfolio["id"]
        self.assertEqual(self.client.delete(f"/portfolios/{pid}").status_code, 204)
        self.assertEqual(self.client.get(f"/portfolios/{pid}/summary").status_code, 404)
        self.assertEqual(self._tx_count(), 0)

    def test_other_users_portfolio_is_not_found(self):
        other = self.new_client()
        self.signup(client=other, email="other@example.com")
        pid = self.portfolio["id"]

        resp = other.post(f"/portfolios/{pid}/transactions", json={"symbol": "AAPL", "quantity": 1, "price": 1})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["detail"], "Portfolio not found")
        self.assertEqual(other.get(f"/portfolios/{pid}/summary").status_code, 404)
        self.assertEqual(other.delete(f"/portfolios/{pid}").status_code, 404)
        self.assertEqual(other.get("/portfolios").json(), [])



class TransactionLockTests(ApiTestCase):
    def test_locking_query_uses_for_update_on_postgres(self):
        db = SessionLocal()
        try:
            query = portfolio_service.owned_portfolio_query(db, 1, 2, for_update=True)
            sql = str(query.statement.compile(dialect=postgresql.dialect()))
            plain = str(portfolio_service.owned_portfolio_query(db, 1, 2).statement.compile(dialect=postgresql.dialect()))
        finally:
            db.close()
        self.assertIn("FOR UPDATE OF portfolios", sql)
        self.assertNotIn("FOR UPDATE", plain)

    def test_add_transaction_locks_the_portfolio(self):
        user = self.signup()
        pid = self.client.post("/portfolios", json={"name": "Main"}).json()["id"]

        with patch.object(portfolio_service, "get_portfolio", wraps=portfolio_service.get_portfolio) as spy:
            resp = self.client.post(
                f"/portfolios/{pid}/transactions",
                json={"symbol": "AAPL", "quantity": 1, "price": 10},
            )
        self.assertEqual(resp.status_code, 201, resp.text)
        spy.assert_called_once_with(ANY, user["id"], pid, for_update=True)


if __name__ == "__main__":
    unittest.main()
