"""Shared fixtures: an in-memory database seeded with a sample organization."""

import os

# Cheap hashing for tests; must be set before settings are first read
os.environ["BCRYPT_ROUNDS"] = "4"

from typing import Dict

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from staffdir.config.settings import reset_settings
from staffdir.database.seed import seed_organization
from staffdir.models import Base, Employee, UserRole
from staffdir.services.hierarchy_index import HierarchyIndex
from staffdir.utils.auth import CurrentUser

reset_settings()


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine with the schema."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    """Create a database session bound to the test engine."""
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = factory()
    yield session
    session.close()


@pytest.fixture
def org(session) -> Dict[str, Employee]:
    """
    Seed the sample organization and commit it.

    ceo
    ├── head_tech
    │   ├── eng_manager
    │   │   ├── engineer_1
    │   │   └── engineer_2
    │   └── qa
    └── head_sales
        └── sales_rep
    """
    employees = seed_organization(session)
    session.commit()
    return employees


@pytest.fixture
def index(org) -> HierarchyIndex:
    return HierarchyIndex(org.values())


def make_actor(employee: Employee, role: UserRole) -> CurrentUser:
    return CurrentUser(id=f"user-{employee.employee_number}", employee_id=employee.id, role=role)


@pytest.fixture
def admin(org) -> CurrentUser:
    """The CEO acting as ADMIN."""
    return make_actor(org["ceo"], UserRole.ADMIN)


@pytest.fixture
def tech_head(org) -> CurrentUser:
    """Head of Technology acting as MANAGER."""
    return make_actor(org["head_tech"], UserRole.MANAGER)


@pytest.fixture
def eng_manager(org) -> CurrentUser:
    """Engineering Manager acting as MANAGER."""
    return make_actor(org["eng_manager"], UserRole.MANAGER)


@pytest.fixture
def engineer(org) -> CurrentUser:
    """Software engineer acting as EMPLOYEE."""
    return make_actor(org["engineer_1"], UserRole.EMPLOYEE)
