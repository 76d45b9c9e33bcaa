"""
Seed Bootstrapper

Baseline rows a fresh database needs: membership pricing settings, the
bootstrap admin account and two sample courses. Each action checks for
existing rows first and inserts only what is missing, so running the
bootstrap on every start is harmless.

The admin password is stored in clear text. Switching to hashed storage
needs a migration for existing rows and is deliberately not done here.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import List

from pydantic import BaseModel, Field

from .adapter import DatabaseAdapter
from .results import coerce_count

logger = logging.getLogger(__name__)


class Lesson(BaseModel):
    """A single lesson inside a course module."""

    id: int
    title: str
    url: str = ""


class CourseModule(BaseModel):
    """A course module and its ordered lessons."""

    id: int
    title: str
    lessons: List[Lesson] = Field(default_factory=list)


class SampleCourse(BaseModel):
    title: str
    desc: str
    price: float
    category: str
    image: str
    modules: List[CourseModule] = Field(default_factory=list)

    def modules_json(self) -> str:
        return serialize_modules(self.modules)


def serialize_modules(modules: List[CourseModule]) -> str:
    """Compact JSON for the courses."modulesData" text column."""
    return json.dumps(
        [module.model_dump() for module in modules],
        ensure_ascii=False,
        separators=(",", ":"),
    )


def parse_modules(raw: str) -> List[CourseModule]:
    """Inverse of serialize_modules; empty or NULL column yields []."""
    if not raw:
        return []
    return [CourseModule.model_validate(item) for item in json.loads(raw)]


# Settings keys seeded on a fresh database, each inserted only if missing
DEFAULT_SETTINGS = {
    "membership_price": "999",
    "membership_price_offer": "",
}

BOOTSTRAP_ADMIN_EMAIL = "admin@julg.com"
BOOTSTRAP_ADMIN_PASSWORD = "admin"
BOOTSTRAP_ADMIN_ROLE = "admin"

_SAMPLE_MODULES = [
    CourseModule(
        id=1,
        title="Introducción",
        lessons=[Lesson(id=1, title="Bienvenida", url="https://www.youtube.com/watch?v=xyz")],
    ),
]

SAMPLE_COURSES = [
    SampleCourse(
        title="Curso Fiscal 2024",
        desc="Aprende todo sobre las nuevas reformas.",
        price=99.00,
        category="Fiscal",
        image="https://images.unsplash.com/photo-1554224155-8d04cb21cd6c?auto=format&fit=crop&q=80&w=600",
        modules=_SAMPLE_MODULES,
    ),
    SampleCourse(
        title="Contabilidad para No Contadores",
        desc="Domina los números de tu negocio.",
        price=49.00,
        category="Contabilidad",
        image="https://images.unsplash.com/photo-1454165804606-c3d57bc86b40?auto=format&fit=crop&q=80&w=600",
        modules=_SAMPLE_MODULES,
    ),
]


@dataclass
class SeedReport:
    """What a bootstrap run actually inserted."""

    settings_inserted: List[str] = field(default_factory=list)
    admin_inserted: bool = False
    courses_inserted: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.settings_inserted or self.admin_inserted or self.courses_inserted)


async def seed_settings(db: DatabaseAdapter) -> List[str]:
    """Insert each default settings key that is missing; returns the keys inserted."""
    inserted = []
    for key, value in DEFAULT_SETTINGS.items():
        row = await db.fetch_one("SELECT value FROM settings WHERE key = ?", [key])
        if row is not None:
            continue
        await db.execute("INSERT INTO settings (key, value) VALUES (?, ?)", [key, value])
        inserted.append(key)
        logger.info(f"Setting seeded: {key}")
    return inserted


async def seed_admin(db: DatabaseAdapter) -> bool:
    """Insert the bootstrap admin account unless its email is already taken."""
    row = await db.fetch_one("SELECT id FROM users WHERE email = ?", [BOOTSTRAP_ADMIN_EMAIL])
    if row is not None:
        return False

    await db.execute(
        'INSERT INTO users (email, password, "firstName", "lastName", role) VALUES (?, ?, ?, ?, ?)',
        [BOOTSTRAP_ADMIN_EMAIL, BOOTSTRAP_ADMIN_PASSWORD, "Admin", "User", BOOTSTRAP_ADMIN_ROLE],
    )
    logger.info("Admin user seeded.")
    return True


async def seed_sample_courses(db: DatabaseAdapter) -> int:
    """Insert the sample catalog when the courses table is empty."""
    row = await db.fetch_one("SELECT COUNT(*) AS count FROM courses")
    if row is None or coerce_count(row["count"]) != 0:
        return 0

    for course in SAMPLE_COURSES:
        await db.execute(
            'INSERT INTO courses (title, "desc", price, category, "modulesData", image) '
            "VALUES (?, ?, ?, ?, ?, ?)",
            [course.title, course.desc, course.price, course.category, course.modules_json(), course.image],
        )

    logger.info("Sample courses seeded.")
    return len(SAMPLE_COURSES)


async def run_seeds(db: DatabaseAdapter) -> SeedReport:
    """Run every seed action once, in order. Errors propagate to the caller."""
    report = SeedReport()
    report.settings_inserted = await seed_settings(db)
    report.admin_inserted = await seed_admin(db)
    report.courses_inserted = await seed_sample_courses(db)

    if not report.changed:
        logger.info("Seed data already present, nothing inserted")
    return report
