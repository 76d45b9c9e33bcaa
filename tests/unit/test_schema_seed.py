"""
Tests for idempotent schema initialization and seeding on SQLite.
"""

import re

import pytest

from campus.database import MutationSummary, open_database
from campus.database.schema import (
    COLUMN_ADDITIONS,
    TABLE_NAMES,
    initialize_schema,
    schema_statements,
)
from campus.database.dialect import StatementKind, classify, to_postgres
from campus.database.seed import (
    BOOTSTRAP_ADMIN_EMAIL,
    DEFAULT_SETTINGS,
    SAMPLE_COURSES,
    CourseModule,
    Lesson,
    parse_modules,
    run_seeds,
    seed_settings,
    serialize_modules,
)


async def table_columns(db):
    """{table: [columns]} straight from sqlite_master / PRAGMA."""
    tables = await db.fetch_all(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
    )
    layout = {}
    for table in tables:
        columns = await db.fetch_all(f"PRAGMA table_info({table['name']})")
        layout[table["name"]] = [c["name"] for c in columns]
    return layout


class TestSchema:
    """Schema initializer."""

    def test_every_statement_is_schema_class(self):
        assert all(classify(sql) is StatementKind.SCHEMA for sql in schema_statements())

    def test_identity_column_named_id(self):
        for sql in schema_statements()[:len(TABLE_NAMES)]:
            if "AUTOINCREMENT" in sql:
                assert "id INTEGER PRIMARY KEY AUTOINCREMENT" in sql

    def test_no_single_precision_columns(self):
        """REAL is 4 bytes on PostgreSQL; fractional columns must be 8 on both engines."""
        for sql in schema_statements():
            assert not re.search(r"\bREAL\b", sql, re.IGNORECASE)
            assert not re.search(r"\bREAL\b", to_postgres(sql, StatementKind.SCHEMA), re.IGNORECASE)

    @pytest.mark.asyncio
    async def test_fractional_price_round_trips(self, sqlite_db):
        await initialize_schema(sqlite_db)
        summary = await sqlite_db.execute(
            'INSERT INTO courses (title, price, "priceOffer") VALUES (?, ?, ?)', ["T", 19.99, 14.95]
        )

        row = await sqlite_db.fetch_one(
            'SELECT price, "priceOffer" FROM courses WHERE id = ?', [summary.generated_id]
        )
        assert row == {"price": 19.99, "priceOffer": 14.95}

        columns = await sqlite_db.fetch_all("PRAGMA table_info(courses)")
        types = {c["name"]: c["type"] for c in columns}
        assert types["price"] == "DOUBLE PRECISION"

    @pytest.mark.asyncio
    async def test_creates_all_tables(self, sqlite_db):
        tables = await initialize_schema(sqlite_db)

        layout = await table_columns(sqlite_db)
        assert tables == TABLE_NAMES
        assert set(layout) == {"users", "courses", "orders", "coupons", "resources", "settings", "enrollments"}
        assert "modulesData" in layout["courses"]
        assert "desc" in layout["courses"]
        assert "items" in layout["orders"]

    @pytest.mark.asyncio
    async def test_second_run_changes_nothing(self, sqlite_db):
        """Running the initializer twice equals running it once."""
        await initialize_schema(sqlite_db)
        first = await table_columns(sqlite_db)

        await initialize_schema(sqlite_db)

        assert await table_columns(sqlite_db) == first

    @pytest.mark.asyncio
    async def test_column_addition_on_older_table(self, sqlite_db):
        """A table created before a column existed gets it on the next start."""
        await sqlite_db.execute(
            "CREATE TABLE courses (id INTEGER PRIMARY KEY AUTOINCREMENT, title TEXT)"
        )

        await initialize_schema(sqlite_db)

        layout = await table_columns(sqlite_db)
        assert layout["courses"] == ["id", "title", "modulesData"]

    @pytest.mark.asyncio
    async def test_column_additions_are_noops_on_fresh_schema(self, sqlite_db):
        from campus.database.schema import column_addition

        await initialize_schema(sqlite_db)
        for addition in COLUMN_ADDITIONS:
            assert await sqlite_db.execute(column_addition(*addition)) == MutationSummary.noop()


class TestSeed:
    """Seed bootstrapper."""

    @pytest.fixture
    async def db(self, sqlite_db):
        await initialize_schema(sqlite_db)
        return sqlite_db

    @pytest.mark.asyncio
    async def test_membership_price_scenario(self, db):
        await run_seeds(db)
        row = await db.fetch_one("SELECT value FROM settings WHERE key = 'membership_price'")
        assert row == {"value": "999"}

        await initialize_schema(db)
        await run_seeds(db)
        rows = await db.fetch_all("SELECT value FROM settings WHERE key = 'membership_price'")
        assert rows == [{"value": "999"}]

    @pytest.mark.asyncio
    async def test_first_run_report(self, db):
        report = await run_seeds(db)

        assert report.settings_inserted == ["membership_price", "membership_price_offer"]
        assert report.admin_inserted is True
        assert report.courses_inserted == 2
        assert report.changed

    @pytest.mark.asyncio
    async def test_exactly_once(self, db):
        await run_seeds(db)
        second = await run_seeds(db)

        assert not second.changed
        settings = await db.fetch_all("SELECT key, value FROM settings ORDER BY key")
        assert settings == [
            {"key": "membership_price", "value": "999"},
            {"key": "membership_price_offer", "value": ""},
        ]
        admins = await db.fetch_all("SELECT * FROM users WHERE email = ?", [BOOTSTRAP_ADMIN_EMAIL])
        assert len(admins) == 1
        assert admins[0]["role"] == "admin"
        assert admins[0]["password"] == "admin"
        courses = await db.fetch_all("SELECT title FROM courses ORDER BY id")
        assert [c["title"] for c in courses] == [c.title for c in SAMPLE_COURSES]

    @pytest.mark.asyncio
    async def test_missing_offer_key_is_completed(self, db):
        """A start interrupted between the two settings inserts heals on the next run."""
        await db.execute("INSERT INTO settings (key, value) VALUES (?, ?)", ["membership_price", "999"])

        inserted = await seed_settings(db)

        assert inserted == ["membership_price_offer"]

    @pytest.mark.asyncio
    async def test_existing_price_is_not_overwritten(self, db):
        await db.execute("INSERT INTO settings (key, value) VALUES (?, ?)", ["membership_price", "1299"])

        await run_seeds(db)

        row = await db.fetch_one("SELECT value FROM settings WHERE key = ?", ["membership_price"])
        assert row == {"value": "1299"}

    @pytest.mark.asyncio
    async def test_non_empty_catalog_is_left_alone(self, db):
        await db.execute("INSERT INTO courses (title) VALUES (?)", ["Existing"])

        report = await run_seeds(db)

        assert report.courses_inserted == 0
        assert await db.fetch_all("SELECT title FROM courses") == [{"title": "Existing"}]

    @pytest.mark.asyncio
    async def test_sample_course_modules_round_trip(self, db):
        await run_seeds(db)
        row = await db.fetch_one('SELECT "modulesData" FROM courses ORDER BY id')

        modules = parse_modules(row["modulesData"])

        assert modules[0].title == "Introducción"
        assert modules[0].lessons[0].title == "Bienvenida"


class TestModulesJson:
    def test_compact_and_unescaped(self):
        modules = [CourseModule(id=1, title="Introducción", lessons=[Lesson(id=1, title="Hola", url="u")])]
        assert serialize_modules(modules) == (
            '[{"id":1,"title":"Introducción","lessons":[{"id":1,"title":"Hola","url":"u"}]}]'
        )

    def test_empty_column(self):
        assert parse_modules("") == []
        assert parse_modules(None) == []


class TestOpenDatabase:
    @pytest.mark.asyncio
    async def test_initializes_and_seeds(self, sqlite_config):
        db = await open_database(sqlite_config)
        try:
            row = await db.fetch_one("SELECT COUNT(*) AS count FROM courses")
            assert row["count"] == 2
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_restart_is_idempotent(self, sqlite_config):
        for _ in range(2):
            db = await open_database(sqlite_config)
            await db.disconnect()

        db = await open_database(sqlite_config)
        try:
            assert len(await db.fetch_all("SELECT id FROM courses")) == 2
            assert len(await db.fetch_all("SELECT key FROM settings")) == len(DEFAULT_SETTINGS)
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_without_seed(self, sqlite_config):
        db = await open_database(sqlite_config, seed=False)
        try:
            assert await db.fetch_all("SELECT * FROM settings") == []
        finally:
            await db.disconnect()
