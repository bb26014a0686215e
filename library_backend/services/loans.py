"""
Loan lifecycle: borrow and return as atomic state transitions.

Each operation runs in a single transaction. The Book row (and, for returns,
the Loan row) is read ``FOR UPDATE`` so that concurrent borrows of the same
title serialize on it and re-read the current ``available_copies`` once the
lock is released. Any rejection raised inside the transaction rolls back the
loan row and the copy count together.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from library_backend.core.database import StorageGateway
from library_backend.core.errors import (
    AlreadyReturnedError,
    NotFoundError,
    UnavailableError,
    ValidationError,
)
from library_backend.models import models

logger = logging.getLogger("library.loans")

DEFAULT_LOAN_DAYS = 14
MAX_LOAN_DAYS = 3650


def loan_days(days) -> int:
    """Return ``days`` if it is a positive integer, else the default loan period.

    Periods longer than ``MAX_LOAN_DAYS`` are capped so the due date stays
    representable.
    """
    if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
        return DEFAULT_LOAN_DAYS
    return min(days, MAX_LOAN_DAYS)


def _lock_book(db: Session, book_id: int) -> Optional[models.Book]:
    return (
        db.query(models.Book)
        .filter(models.Book.book_id == book_id)
        .with_for_update()
        .first()
    )


def _lock_loan(db: Session, loan_id: int) -> Optional[models.Loan]:
    return (
        db.query(models.Loan)
        .filter(models.Loan.loan_id == loan_id)
        .with_for_update()
        .first()
    )


class LoanService:
    def __init__(self, gateway: StorageGateway) -> None:
        self.gateway = gateway

    def borrow(self, book_id: int, member_id: int, days: int = DEFAULT_LOAN_DAYS) -> int:
        """Lend one copy of ``book_id`` to ``member_id`` and return the new loan id."""
        if not book_id or not member_id:
            raise ValidationError("bookId and memberId required")

        def _borrow(db: Session) -> int:
            book = _lock_book(db, book_id)
            if book is None:
                raise NotFoundError("book")
            if db.get(models.Member, member_id) is None:
                raise NotFoundError("member")
            if book.available_copies <= 0:
                raise UnavailableError()

            now = datetime.utcnow()
            loan = models.Loan(
                book_id=book.book_id,
                member_id=member_id,
                borrow_date=now,
                due_date=now + timedelta(days=loan_days(days)),
                is_returned=False,
            )
            db.add(loan)
            book.available_copies -= 1
            db.flush()
            return loan.loan_id

        try:
            loan_id = self.gateway.run_in_transaction(_borrow)
        except (NotFoundError, UnavailableError) as exc:
            logger.info(f"Borrow rejected book={book_id} member={member_id}: {exc}")
            raise
        logger.info(f"Member {member_id} borrowed book {book_id} loan {loan_id}")
        return loan_id

    def return_loan(self, loan_id: int) -> None:
        """Close an open loan and put its copy back on the shelf."""
        if not loan_id:
            raise ValidationError("loanId required")

        def _return(db: Session) -> None:
            loan = _lock_loan(db, loan_id)
            if loan is None:
                raise NotFoundError("loan")
            if loan.is_returned:
                raise AlreadyReturnedError()

            loan.return_date = datetime.utcnow()
            loan.is_returned = True
            book = _lock_book(db, loan.book_id)
            if book is None:
                raise NotFoundError("book")
            book.available_copies += 1

        try:
            self.gateway.run_in_transaction(_return)
        except (NotFoundError, AlreadyReturnedError) as exc:
            logger.info(f"Return rejected loan={loan_id}: {exc}")
            raise
        logger.info(f"Loan {loan_id} returned")
