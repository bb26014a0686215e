from fastapi import APIRouter, Depends, Request
from typing import List

from library_backend.core.database import StorageGateway
from library_backend.schemas import schemas
from library_backend.services.catalog import CatalogService
from library_backend.services.loans import LoanService
from library_backend.services.queries import LoanQueryService

router = APIRouter()


def get_gateway(request: Request) -> StorageGateway:
    return request.app.state.gateway


def get_catalog(gateway: StorageGateway = Depends(get_gateway)) -> CatalogService:
    return CatalogService(gateway)


def get_loans(gateway: StorageGateway = Depends(get_gateway)) -> LoanService:
    return LoanService(gateway)


def get_loan_queries(gateway: StorageGateway = Depends(get_gateway)) -> LoanQueryService:
    return LoanQueryService(gateway)


# -----------------------------
# Books
# -----------------------------
@router.get("/books", response_model=List[schemas.BookOut])
def list_books(catalog: CatalogService = Depends(get_catalog)):
    return catalog.list_books()

@router.post("/books", response_model=schemas.BookCreated)
def create_book(book_in: schemas.BookCreate, catalog: CatalogService = Depends(get_catalog)):
    book_id = catalog.create_book(book_in.model_dump())
    return schemas.BookCreated(book_id=book_id)

# -----------------------------
# Members
# -----------------------------
@router.get("/members", response_model=List[schemas.MemberOut])
def list_members(catalog: CatalogService = Depends(get_catalog)):
    return catalog.list_members()

@router.post("/members", response_model=schemas.MemberCreated)
def create_member(member_in: schemas.MemberCreate, catalog: CatalogService = Depends(get_catalog)):
    member_id = catalog.create_member(member_in.model_dump())
    return schemas.MemberCreated(member_id=member_id)

# -----------------------------
# Loans (borrow & return)
# -----------------------------
@router.post("/borrow", response_model=schemas.OperationResult)
def borrow_book(payload: schemas.BorrowRequest, loans: LoanService = Depends(get_loans)):
    loan_id = loans.borrow(payload.book_id, payload.member_id, payload.days)
    return schemas.OperationResult(ok=True, loan_id=loan_id)

@router.post("/return", response_model=schemas.OperationResult, response_model_exclude_none=True)
def return_book(payload: schemas.ReturnRequest, loans: LoanService = Depends(get_loans)):
    loans.return_loan(payload.loan_id)
    return schemas.OperationResult(ok=True)

@router.get("/loans", response_model=List[schemas.LoanView])
def list_loans(queries: LoanQueryService = Depends(get_loan_queries)):
    return queries.list_loans()
