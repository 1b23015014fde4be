"""Sample organization for development databases and tests."""

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from staffdir.config.settings import get_settings
from staffdir.models.employee import Employee
from staffdir.models.user import User
from staffdir.utils.auth import hash_password
from staffdir.utils.positions import default_role_for_position

logger = logging.getLogger(__name__)

# key, first, last, position, department, manager key, salary, birth date
SAMPLE_ORGANIZATION: List[Tuple[str, str, str, str, str, Optional[str], str, date]] = [
    ("ceo", "Olivia", "Grant", "Chief Executive Officer", "management", None, "250000", date(1970, 3, 14)),
    ("head_tech", "Marcus", "Reyes", "Head of Technology", "technology", "ceo", "185000", date(1978, 7, 2)),
    ("head_sales", "Priya", "Shah", "Head of Sales", "sales", "ceo", "170000", date(1980, 11, 23)),
    ("eng_manager", "Daniel", "Okafor", "Engineering Manager", "technology", "head_tech", "150000", date(1984, 1, 9)),
    ("engineer_1", "Sofia", "Lindqvist", "Software Engineer", "technology", "eng_manager", "115000", date(1991, 5, 30)),
    ("engineer_2", "Tom", "Becker", "Software Engineer", "technology", "eng_manager", "110000", date(1993, 9, 17)),
    ("qa", "Aisha", "Bello", "QA Engineer", "technology", "head_tech", "95000", date(1990, 12, 4)),
    ("sales_rep", "Lucas", "Moreau", "Sales Representative", "sales", "head_sales", "72000", date(1995, 4, 21)),
]


def seed_organization(session: Session) -> Dict[str, Employee]:
    """
    Insert the sample organization with a login per employee.

    Returns the created employees keyed by their short name. The caller
    owns the transaction.
    """
    password_hash = hash_password(get_settings().onboarding.default_password)
    employees: Dict[str, Employee] = {}

    for number, (key, first, last, position, department, manager_key, salary, birth) in enumerate(
        SAMPLE_ORGANIZATION, start=1
    ):
        email = f"{first}.{last}@example.com".lower()
        employee = Employee(
            employee_number=f"EMP-{number:03d}",
            first_name=first,
            last_name=last,
            email=email,
            birth_date=birth,
            salary=Decimal(salary),
            position=position,
            department=department,
            manager_id=employees[manager_key].id if manager_key else None,
        )
        session.add(employee)
        session.flush()
        employees[key] = employee

        session.add(
            User(
                email=email,
                password_hash=password_hash,
                role=default_role_for_position(position),
            )
        )

    session.flush()
    logger.info(f"Seeded {len(employees)} employees")
    return employees


if __name__ == "__main__":
    from staffdir.database.database import get_db_context, init_db

    logging.basicConfig(level=logging.INFO)
    init_db()
    with get_db_context() as db:
        seed_organization(db)
