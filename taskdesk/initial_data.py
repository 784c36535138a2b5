# taskdesk/initial_data.py

import logging
from dotenv import load_dotenv
from sqlalchemy.orm import Session

load_dotenv()

import taskdesk.models  # noqa: F401  регистрирует все модели в Base.metadata
from taskdesk.models.base import Base
from taskdesk.database import SessionLocal, engine
from taskdesk.crud.user import create_first_admin, get_user_by_email
from taskdesk.core.settings import settings
from taskdesk.core.exceptions import UserValidationError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("Taskdesk.InitialData")

def create_tables() -> None:
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)

def create_initial_admin_user(db: Session) -> None:
    logger.info("Checking if initial admin user needs to be created...")
    admin_email = settings.FIRST_ADMIN_EMAIL

    if get_user_by_email(db, admin_email):
        logger.info(f"Admin user '{admin_email}' already exists. No action taken.")
        return

    logger.info(f"Admin user '{admin_email}' not found. Creating...")
    try:
        create_first_admin(
            db,
            email=admin_email,
            password=settings.FIRST_ADMIN_PASSWORD,
            name=settings.FIRST_ADMIN_NAME,
        )
        logger.info(f"Admin user '{admin_email}' created successfully.")
    except UserValidationError as e:
        logger.error(f"Failed to create admin user: {e}")

def main() -> None:
    logger.info("Initializing initial data (tables, admin user)...")
    create_tables()
    db = SessionLocal()
    try:
        create_initial_admin_user(db)
    finally:
        db.close()
    logger.info("Finished initial data setup.")

if __name__ == "__main__":
    main()
