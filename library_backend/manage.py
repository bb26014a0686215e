"""Small management utilities: create the schema, seed sample data, run the API."""

import argparse
import logging

from library_backend.core.config import Settings, configure_logging
from library_backend.core.database import StorageGateway
from library_backend.models.models import Book, Member

logger = logging.getLogger("library.manage")

SAMPLE_BOOKS = [
    dict(isbn="978-1449373320", title="Designing Data-Intensive Applications",
         author="Martin Kleppmann", publisher="O'Reilly", year_published=2017,
         total_copies=2, available_copies=2),
    dict(isbn="978-0132350884", title="Clean Code", author="Robert C. Martin",
         publisher="Prentice Hall", year_published=2008, total_copies=3, available_copies=3),
    dict(isbn="978-0441172719", title="Dune", author="Frank Herbert",
         publisher="Ace", year_published=1990, total_copies=1, available_copies=1),
]

SAMPLE_MEMBERS = [
    dict(member_code="M-0001", full_name="Alice Reader", email="alice@example.com"),
    dict(member_code="M-0002", full_name="Bob Borrower", email="bob@example.com"),
]


def seed(gateway: StorageGateway) -> None:
    # quick idempotent seed
    with gateway.transaction() as db:
        if db.query(Book).count() == 0:
            db.add_all([Book(**b) for b in SAMPLE_BOOKS])
        if db.query(Member).count() == 0:
            db.add_all([Member(**m) for m in SAMPLE_MEMBERS])
    logger.info("Seeded sample data")


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Library backend utilities")
    parser.add_argument("--initdb", action="store_true", help="Create tables")
    parser.add_argument("--seed", action="store_true", help="Seed sample data")
    parser.add_argument("--serve", action="store_true", help="Run the API server")
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    if args.initdb or args.seed:
        gateway = StorageGateway(settings.database_url, settings.pool_size, settings.pool_timeout)
        gateway.init()
        try:
            if args.seed:
                seed(gateway)
        finally:
            gateway.dispose()
    if args.serve:
        import uvicorn

        uvicorn.run("library_backend.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
