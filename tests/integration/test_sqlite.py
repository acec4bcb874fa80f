"""Integration test for hydration of joined SQLite result sets.

Covers: plan aliases against a hand-written join, eager OneToMany and
ManyToMany fan-out, lazy OneToOne foreign keys, value casting and row
validation, end-to-end against a real SQLite in-memory database.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from datetime import datetime

import pytest

from nano_model import (
    ColumnType,
    EntityMapper,
    MalformedRowError,
    MapperOptions,
    build_load_plan,
    cursor_rows,
)
from nano_model.entity import Entity, EntityCollection

# --- Entities ---


class Shop(Entity):
    __table__ = "shops"
    __columns__ = {"id": ColumnType.INT, "name": ColumnType.STRING}


class Customer(Entity):
    __table__ = "customers"
    __columns__ = {"id": ColumnType.INT, "name": ColumnType.STRING}
    __relations__ = [
        {"name": "shop", "entity": Shop, "loading": "lazy", "foreign_key": "shop_id"},
        {
            "name": "invoices",
            "entity": "Invoice",
            "type": "OneToMany",
            "loading": "eager",
            "foreign_key": "id",
            "binding_key": "customer_id",
        },
    ]


class Invoice(Entity):
    __table__ = "invoices"
    __columns__ = {
        "id": ColumnType.INT,
        "total": ColumnType.FLOAT,
        "issued_at": ColumnType.DATETIME,
    }
    __relations__ = [
        {
            "name": "customer",
            "entity": Customer,
            "loading": "lazy",
            "foreign_key": "customer_id",
            "binding_key": "id",
        },
        {
            "name": "products",
            "entity": "Product",
            "type": "ManyToMany",
            "loading": "eager",
            "junction_table": "invoice_products",
            "foreign_key": "invoice_id",
            "binding_key": "product_id",
        },
    ]


class Product(Entity):
    __table__ = "products"
    __columns__ = {"id": ColumnType.INT, "title": ColumnType.STRING}


SCHEMA = """
CREATE TABLE shops (id INTEGER PRIMARY KEY, name TEXT NOT NULL);
CREATE TABLE customers (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    shop_id INTEGER REFERENCES shops(id)
);
CREATE TABLE invoices (
    id INTEGER PRIMARY KEY,
    customer_id INTEGER NOT NULL REFERENCES customers(id),
    total REAL NOT NULL,
    issued_at TEXT NOT NULL
);
CREATE TABLE products (id INTEGER PRIMARY KEY, title TEXT NOT NULL);
CREATE TABLE invoice_products (
    invoice_id INTEGER NOT NULL REFERENCES invoices(id),
    product_id INTEGER NOT NULL REFERENCES products(id)
);

INSERT INTO shops (id, name) VALUES (10, 'Main street');
INSERT INTO customers (id, name, shop_id) VALUES (1, 'Ana', 10), (2, 'Bo', NULL), (3, 'Cy', 10);
INSERT INTO invoices (id, customer_id, total, issued_at) VALUES
    (100, 1, 9.5, '2024-01-01 10:00:00'),
    (101, 1, 20.0, '2024-01-02 11:30:00'),
    (102, 2, 5.0, '2024-02-01 09:15:00');
INSERT INTO products (id, title) VALUES (1, 'pen'), (2, 'ink');
INSERT INTO invoice_products (invoice_id, product_id) VALUES (100, 1), (100, 2), (101, 1);
"""

CUSTOMERS_QUERY = """
SELECT
    c.id AS id_0, c.name AS name_0, c.shop_id AS shop_id_0,
    i.id AS id_1, i.total AS total_1, i.issued_at AS issued_at_1,
    i.customer_id AS customer_id_1,
    p.id AS id_2, p.title AS title_2
FROM customers c
LEFT JOIN invoices i ON i.customer_id = c.id
LEFT JOIN invoice_products ip ON ip.invoice_id = i.id
LEFT JOIN products p ON p.id = ip.product_id
ORDER BY c.id, i.id, p.id
"""


# --- Fixtures ---


@pytest.fixture
def conn() -> Iterator[sqlite3.Connection]:
    connection = sqlite3.connect(":memory:")
    connection.executescript(SCHEMA)
    yield connection
    connection.close()


def _fetch(conn: sqlite3.Connection, sql: str, params: tuple = ()) -> list[dict]:
    return list(cursor_rows(conn.execute(sql, params)))


# --- Tests ---


class TestLoadPlanAgainstQuery:
    def test_query_selects_plan_aliases(self, conn: sqlite3.Connection) -> None:
        plan = build_load_plan(Customer.metadata())
        cursor = conn.execute(CUSTOMERS_QUERY)

        assert [desc[0] for desc in cursor.description] == plan.aliases()
        assert [m.table for m in plan.metadata_list] == ["customers", "invoices", "products"]


class TestCustomerGraph:
    def test_roots_in_query_order(self, conn: sqlite3.Connection) -> None:
        mapper: EntityMapper[Customer] = EntityMapper(Customer.metadata())
        customers = mapper.map_cursor(conn.execute(CUSTOMERS_QUERY), batch_size=2)

        assert [c.id for c in customers] == [1, 2, 3]
        assert [c.name for c in customers] == ["Ana", "Bo", "Cy"]
        assert all(isinstance(c, Customer) for c in customers)

    def test_one_to_many_fan_out(self, conn: sqlite3.Connection) -> None:
        ana, bo, cy = EntityMapper(Customer.metadata()).map_to_entities(
            _fetch(conn, CUSTOMERS_QUERY)
        )

        assert isinstance(ana.invoices, EntityCollection)
        assert [i.id for i in ana.invoices] == [100, 101]
        assert [i.id for i in bo.invoices] == [102]
        assert len(cy.invoices) == 0

    def test_many_to_many_through_junction(self, conn: sqlite3.Connection) -> None:
        ana, bo, _ = EntityMapper(Customer.metadata()).map_to_entities(
            _fetch(conn, CUSTOMERS_QUERY)
        )
        first, second = ana.invoices

        assert [p.title for p in first.products] == ["pen", "ink"]
        assert [p.title for p in second.products] == ["pen"]
        assert len(bo.invoices[0].products) == 0

    def test_lazy_foreign_keys(self, conn: sqlite3.Connection) -> None:
        ana, bo, _ = EntityMapper(Customer.metadata()).map_to_entities(
            _fetch(conn, CUSTOMERS_QUERY)
        )

        assert ana.shop == 10
        assert bo.shop is None
        assert ana.invoices[0].customer == 1

    def test_values_are_cast(self, conn: sqlite3.Connection) -> None:
        ana = EntityMapper(Customer.metadata()).map_to_entities(_fetch(conn, CUSTOMERS_QUERY))[0]
        invoice = ana.invoices[0]

        assert invoice.total == 9.5
        assert invoice.issued_at == datetime(2024, 1, 1, 10, 0, 0)
        assert not invoice.is_new()
        assert not invoice.is_modified()

    def test_filtered_query(self, conn: sqlite3.Connection) -> None:
        sql = CUSTOMERS_QUERY.replace("ORDER BY", "WHERE c.id = ? ORDER BY")
        customers = EntityMapper(Customer.metadata()).map_cursor(conn.execute(sql, (2,)))

        assert [c.name for c in customers] == ["Bo"]
        assert customers[0].invoices[0].total == 5.0

    def test_empty_result(self, conn: sqlite3.Connection) -> None:
        sql = CUSTOMERS_QUERY.replace("ORDER BY", "WHERE c.id = ? ORDER BY")
        assert EntityMapper(Customer.metadata()).map_to_entities(_fetch(conn, sql, (99,))) == []

    def test_iteration_check_accepts_conforming_rows(self, conn: sqlite3.Connection) -> None:
        mapper = EntityMapper(
            Customer.metadata(), options=MapperOptions(check_iterations=True)
        )
        assert len(mapper.map_to_entities(_fetch(conn, CUSTOMERS_QUERY))) == 3


class TestInvoiceGraph:
    def test_lazy_back_reference_is_not_joined(self, conn: sqlite3.Connection) -> None:
        plan = build_load_plan(Invoice.metadata())
        sql = """
            SELECT
                i.id AS id_0, i.total AS total_0, i.issued_at AS issued_at_0,
                i.customer_id AS customer_id_0,
                p.id AS id_1, p.title AS title_1
            FROM invoices i
            LEFT JOIN invoice_products ip ON ip.invoice_id = i.id
            LEFT JOIN products p ON p.id = ip.product_id
            ORDER BY i.id DESC, p.id
        """
        invoices = EntityMapper(Invoice.metadata()).map_to_entities(_fetch(conn, sql))

        assert len(plan) == 2
        assert [i.id for i in invoices] == [102, 101, 100]
        assert [i.customer for i in invoices] == [2, 1, 1]
        assert [p.id for p in invoices[2].products] == [1, 2]


class TestSingleRow:
    def test_map_one(self, conn: sqlite3.Connection) -> None:
        cursor = conn.execute("SELECT id AS id_0, title AS title_0 FROM products WHERE id = ?", (2,))
        product = EntityMapper(Product.metadata()).map_one(next(cursor_rows(cursor)))

        assert isinstance(product, Product)
        assert product.title == "ink"

    def test_no_row(self, conn: sqlite3.Connection) -> None:
        cursor = conn.execute("SELECT id AS id_0 FROM products WHERE id = ?", (99,))
        mapper = EntityMapper(Product.metadata(), options=MapperOptions(strict=False))
        assert mapper.map_cursor(cursor) == []


class TestMalformedQuery:
    def test_missing_alias_is_reported(self, conn: sqlite3.Connection) -> None:
        rows = _fetch(conn, "SELECT id AS id_0 FROM products ORDER BY id")

        with pytest.raises(MalformedRowError, match="title_0"):
            EntityMapper(Product.metadata()).map_to_entities(rows)

    def test_lenient_mode_fills_missing_columns(self, conn: sqlite3.Connection) -> None:
        rows = _fetch(conn, "SELECT id AS id_0 FROM products ORDER BY id")
        mapper = EntityMapper(Product.metadata(), options=MapperOptions(strict=False))

        products = mapper.map_to_entities(rows)

        assert [p.id for p in products] == [1, 2]
        assert products[0].title is None
