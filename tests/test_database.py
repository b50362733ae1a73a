"""Tests for transaction helpers: error translation and conflict retries."""

from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from src.core.database import atomic, is_retryable, retry_on_conflict, unique_violation_table
from src.core.exceptions import (
    ConflictException,
    InvariantViolationException,
    NotFoundException,
)
from src.models.inventory import Shop, ShopInventory


class PgError(Exception):
    """Driver error carrying a PostgreSQL SQLSTATE, like psycopg2 raises."""

    def __init__(self, pgcode, table_name=None):
        super().__init__(f"pgcode {pgcode}")
        self.pgcode = pgcode
        self.diag = SimpleNamespace(table_name=table_name)


def duplicate_shop(db, shop):
    db.add(Shop(owner_id=shop.owner_id, name="Second shop"))
    db.flush()


class TestAtomicTranslation:
    def test_sqlite_lock_becomes_conflict(self, db):
        with pytest.raises(ConflictException):
            with atomic(db):
                raise OperationalError("UPDATE shop_inventory", {}, Exception("database is locked"))

    @pytest.mark.parametrize("pgcode", ["55P03", "40001", "40P01", "57014"])
    def test_postgres_contention_becomes_conflict(self, db, pgcode):
        with pytest.raises(ConflictException) as exc:
            with atomic(db):
                raise OperationalError("UPDATE shop_inventory", {}, PgError(pgcode))
        assert exc.value.status_code == 409

    def test_other_driver_errors_propagate(self, db):
        with pytest.raises(OperationalError):
            with atomic(db):
                raise OperationalError("SELECT 1", {}, Exception("no such table: nowhere"))

    def test_constraint_breach_becomes_invariant_violation(self, db, factory):
        shop = factory.shop()

        with pytest.raises(InvariantViolationException) as exc:
            with atomic(db):
                duplicate_shop(db, shop)

        assert exc.value.status_code == 500
        assert db.query(Shop).count() == 1

    def test_unique_violation_on_race_table_becomes_conflict(self, db, factory):
        shop = factory.shop()

        with pytest.raises(ConflictException):
            with atomic(db, insert_race_tables=(Shop.__tablename__,)):
                duplicate_shop(db, shop)

        assert db.query(Shop).count() == 1

    def test_unique_violation_elsewhere_is_not_retryable(self, db, factory):
        shop = factory.shop()

        with pytest.raises(InvariantViolationException):
            with atomic(db, insert_race_tables=(ShopInventory.__tablename__,)):
                duplicate_shop(db, shop)

    def test_domain_errors_roll_back_and_pass_through(self, db, factory):
        shop = factory.shop()

        with pytest.raises(NotFoundException):
            with atomic(db):
                shop.name = "Renamed"
                raise NotFoundException("gone")

        db.refresh(shop)
        assert shop.name != "Renamed"


class TestUniqueViolationTable:
    def test_postgres_diag(self):
        exc = IntegrityError("INSERT", {}, PgError("23505", table_name="cart_items"))
        assert unique_violation_table(exc) == "cart_items"
        assert not is_retryable(exc)

    def test_sqlite_message(self):
        exc = IntegrityError(
            "INSERT", {},
            Exception("UNIQUE constraint failed: shop_inventory.shop_id, shop_inventory.product_id")
        )
        assert unique_violation_table(exc) == "shop_inventory"

    def test_other_integrity_errors(self):
        exc = IntegrityError("INSERT", {}, Exception("CHECK constraint failed: ck_shop_inventory_stock_non_negative"))
        assert unique_violation_table(exc) is None


class TestRetryOnConflict:
    def test_retries_until_success(self):
        calls = []

        @retry_on_conflict(max_attempts=3, backoff=0)
        def settle():
            calls.append(1)
            if len(calls) < 3:
                raise ConflictException()
            return "settled"

        assert settle() == "settled"
        assert len(calls) == 3

    def test_reraises_after_last_attempt(self):
        calls = []

        @retry_on_conflict(max_attempts=2, backoff=0)
        def settle():
            calls.append(1)
            raise ConflictException()

        with pytest.raises(ConflictException):
            settle()
        assert len(calls) == 2

    def test_other_errors_are_not_retried(self):
        calls = []

        @retry_on_conflict(max_attempts=3, backoff=0)
        def settle():
            calls.append(1)
            raise NotFoundException("gone")

        with pytest.raises(NotFoundException):
            settle()
        assert len(calls) == 1
