from typing import List

from sqlalchemy import select

from library_backend.core.database import StorageGateway
from library_backend.models import models
from library_backend.schemas import schemas


class LoanQueryService:
    """Read views over loans joined with their book and member."""

    def __init__(self, gateway: StorageGateway) -> None:
        self.gateway = gateway

    def list_loans(self) -> List[schemas.LoanView]:
        Loan, Book, Member = models.Loan, models.Book, models.Member
        query = (
            select(
                Loan.loan_id,
                Loan.book_id,
                Book.title,
                Loan.member_id,
                Member.full_name,
                Loan.borrow_date,
                Loan.due_date,
                Loan.return_date,
                Loan.is_returned,
            )
            .join(Book, Book.book_id == Loan.book_id)
            .join(Member, Member.member_id == Loan.member_id)
            .order_by(Loan.borrow_date.desc(), Loan.loan_id.desc())
        )
        with self.gateway.session() as db:
            rows = db.execute(query).mappings().all()
        return [schemas.LoanView.model_validate(dict(r)) for r in rows]
