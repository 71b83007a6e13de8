# backend/drivingschool/init_db.py
"""
Create the scheduling tables.

Usage:
    python -m drivingschool.init_db
"""

import logging

from .database import Base, engine
from .models import Booking, Course, InstructorAvailability, User  # noqa: F401  registers tables

logger = logging.getLogger(__name__)


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
    logger.info(f"Created tables: {', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    init_db()
