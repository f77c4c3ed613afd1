# Overview: Threaded concurrency tests on a file-backed SQLite database.

"""
Concurrency Tests

Parallel checkouts must never oversell and parallel capital withdrawals must
never overdraw. Every request either commits completely or is rejected with
InsufficientStock / InsufficientCapital / ConcurrencyConflict.
"""
import os
import tempfile
import threading
import unittest

from depot import create_app
from depot.errors import ConcurrencyConflict, InsufficientCapital, InsufficientStock
from depot.extensions import db
from depot.models import Outlet, PriceRule, Product, Sale
from depot.models.catalog import CATEGORY_FUEL_CANISTER
from depot.services import capital_service, checkout_service, inventory_service


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "DEPOT_DB_LOCK_TIMEOUT_SECONDS": 15,
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            outlet = Outlet(name="Concurrency Depot", code="CCY")
            db.session.add(outlet)
            db.session.commit()
            self.outlet_id = outlet.id

            product = Product(name="LPG 3kg", category=CATEGORY_FUEL_CANISTER, is_global=True)
            db.session.add(product)
            db.session.flush()
            db.session.add(PriceRule(outlet_id=self.outlet_id, product_id=product.id, base_price=18000, cost_price=16000))
            db.session.commit()
            self.product_id = product.id

            inventory_service.correct_inventory(
                self.outlet_id,
                self.product_id,
                delta_filled=10,
                delta_empty=0,
                note="Seed inventory",
            )

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_workers(self, target, count):
        results = []
        lock = threading.Lock()

        def worker():
            with self.app.app_context():
                try:
                    outcome = target()
                    with lock:
                        results.append(outcome)
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker) for _ in range(count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results

    def test_concurrent_checkouts_never_oversell(self):
        def buy_three():
            result = checkout_service.checkout(
                self.outlet_id,
                [{"product_id": self.product_id, "quantity": 3}],
                "qris",
            )
            return result.sale.invoice_number

        results = self._run_workers(buy_three, 8)

        invoices = [r for r in results if isinstance(r, str)]
        failures = [r for r in results if not isinstance(r, str)]
        for exc in failures:
            self.assertIsInstance(exc, (InsufficientStock, ConcurrencyConflict))

        self.assertLessEqual(len(invoices), 3)
        self.assertEqual(len(invoices), len(set(invoices)))

        with self.app.app_context():
            state = inventory_service.get_inventory_state(self.outlet_id, self.product_id)
            self.assertEqual(state["stock_filled"], 10 - 3 * len(invoices))
            self.assertGreaterEqual(state["stock_filled"], 0)
            self.assertEqual(state["stock_empty"], 3 * len(invoices))
            self.assertEqual(db.session.query(Sale).count(), len(invoices))
            self.assertEqual(inventory_service.verify_inventory(self.outlet_id), [])

    def test_concurrent_withdrawals_never_overdraw(self):
        with self.app.app_context():
            capital_service.record_entry(self.outlet_id, "in", 500000)

        def withdraw():
            return capital_service.record_entry(self.outlet_id, "out", 100000).id

        results = self._run_workers(withdraw, 8)

        committed = [r for r in results if isinstance(r, int)]
        for exc in results:
            if not isinstance(exc, int):
                self.assertIsInstance(exc, (InsufficientCapital, ConcurrencyConflict))

        self.assertLessEqual(len(committed), 5)

        with self.app.app_context():
            balance = capital_service.get_balance(self.outlet_id)
            self.assertEqual(balance, 500000 - 100000 * len(committed))
            self.assertGreaterEqual(balance, 0)


if __name__ == "__main__":
    unittest.main()
