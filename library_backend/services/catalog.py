import logging
from typing import Any, List, Mapping

from library_backend.core.database import StorageGateway
from library_backend.core.errors import ValidationError
from library_backend.models import models

logger = logging.getLogger("library.catalog")


def _require(fields: Mapping[str, Any], *names: str) -> None:
    missing = [n for n in names if fields.get(n) is None or not str(fields[n]).strip()]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required")


def _clean(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class CatalogService:
    """Create and list books and members."""

    def __init__(self, gateway: StorageGateway) -> None:
        self.gateway = gateway

    def list_books(self) -> List[models.Book]:
        with self.gateway.session() as db:
            return db.query(models.Book).order_by(models.Book.title).all()

    def create_book(self, fields: Mapping[str, Any]) -> int:
        _require(fields, "isbn", "title", "author")
        total = fields.get("total_copies")
        if total is None:
            total = 1
        if isinstance(total, bool) or not isinstance(total, int) or total < 0:
            raise ValidationError("total_copies must be a non-negative integer")
        year = fields.get("year")
        if year is not None and (isinstance(year, bool) or not isinstance(year, int)):
            raise ValidationError("year must be an integer")
        book = models.Book(
            isbn=str(fields["isbn"]).strip(),
            title=str(fields["title"]).strip(),
            author=str(fields["author"]).strip(),
            publisher=_clean(fields.get("publisher")),
            year_published=year,
            total_copies=total,
            available_copies=total,
        )
        with self.gateway.transaction() as db:
            db.add(book)
            db.flush()
            book_id = book.book_id
        logger.info(f"Created book id={book_id} title={book.title}")
        return book_id

    def list_members(self) -> List[models.Member]:
        with self.gateway.session() as db:
            return db.query(models.Member).order_by(models.Member.full_name).all()

    def create_member(self, fields: Mapping[str, Any]) -> int:
        _require(fields, "member_code", "full_name")
        member = models.Member(
            member_code=str(fields["member_code"]).strip(),
            full_name=str(fields["full_name"]).strip(),
            email=_clean(fields.get("email")),
            phone=_clean(fields.get("phone")),
            address=_clean(fields.get("address")),
        )
        with self.gateway.transaction() as db:
            db.add(member)
            db.flush()
            member_id = member.member_id
        logger.info(f"Created member id={member_id} code={member.member_code}")
        return member_id
