"""
Database table creation utility.
Checks if tables exist and creates them if they don't, then seeds the
default membership groups.

Usage:
    python tables.py

This script:
1. Imports all models to register them with SQLAlchemy Base
2. Checks which tables exist in the database
3. Creates only the missing tables
4. Seeds the membership groups that are missing

It does not alter existing tables.
"""

import sys
import logging
from dotenv import load_dotenv
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# Import database components
from database import Base, engine


def import_all_models():
    """Import all models to register them with SQLAlchemy Base.metadata"""
    logger.info("Importing all models...")

    try:
        # Identity realms and their side rows
        from Member_module.Member_model import (
            Member, Affiliate, Admin, MemberInfo, MemberPrivacy, MemberNotification, MemberBackground,
        )
        logger.debug("Imported realm and member side-row models")

        # Login logs
        from Login_module.Auth.LoginLog_model import MemberLoginLog, AffiliateLoginLog, AdminLoginLog
        logger.debug("Imported login log models")

        # Memberships and settings
        from Membership_module.Membership_model import Membership
        from Settings_module.Settings_model import SiteSetting
        logger.debug("Imported Membership and SiteSetting models")

        # Member-owned content
        import Content_module.Content_model  # noqa: F401
        logger.debug("Imported content models")

        # Verify models are registered
        registered_tables = len(Base.metadata.tables)
        logger.info(f"Imported models, {registered_tables} table(s) registered in Base.metadata")

        if registered_tables == 0:
            logger.error("No tables registered in Base.metadata!")
            return False

        return True

    except ImportError as e:
        logger.error(f"Error importing models: {e}")
        return False


def get_existing_tables():
    """Get list of existing tables in the database"""
    try:
        inspector = inspect(engine)
        return inspector.get_table_names()
    except OperationalError as e:
        logger.error(f"Cannot connect to database: {e}")
        logger.error("Please check your DATABASE_URL environment variable")
        return None


def create_missing_tables(existing_tables):
    """Create missing tables using Base.metadata.create_all()"""
    all_expected_tables = set(Base.metadata.tables.keys())
    missing_tables = all_expected_tables - set(existing_tables)

    if not missing_tables:
        logger.info("All tables already exist in the database!")
        return True, []

    logger.info(f"Found {len(missing_tables)} missing table(s): {', '.join(sorted(missing_tables))}")

    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
    except OperationalError as e:
        logger.error(f"Database operation error: {e}")
        logger.error("Please check that the database is running, DATABASE_URL is correct "
                     "and the user has CREATE TABLE permissions")
        return False, []

    created_tables = inspect(engine).get_table_names()
    newly_created = sorted(set(created_tables) - set(existing_tables))
    if newly_created:
        logger.info(f"Successfully created {len(newly_created)} table(s): {', '.join(newly_created)}")
        return True, newly_created

    logger.warning("No new tables were created")
    return False, []


def main():
    """Create all missing tables and seed the default memberships"""
    logger.info("Step 1: Importing all models...")
    if not import_all_models():
        logger.error("Failed to import models. Exiting.")
        return False

    logger.info("Step 2: Checking existing tables in database...")
    existing_tables = get_existing_tables()
    if existing_tables is None:
        logger.error("Cannot proceed without database connection. Exiting.")
        return False
    logger.info(f"Found {len(existing_tables)} existing table(s) in database")

    logger.info("Step 3: Creating missing tables...")
    success, newly_created = create_missing_tables(existing_tables)
    if not success:
        logger.error("Failed to create tables. Please check the error messages above.")
        return False

    logger.info("Step 4: Seeding membership groups...")
    from Membership_module.bootstrap import seed_default_memberships
    seed_default_memberships()

    if newly_created:
        logger.info(f"Successfully created {len(newly_created)} missing table(s)")
    else:
        logger.info("All tables already exist. No action needed.")
    return True


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    try:
        success = main()
        sys.exit(0 if success else 1)
    except KeyboardInterrupt:
        logger.info("Script interrupted by user")
        sys.exit(1)
