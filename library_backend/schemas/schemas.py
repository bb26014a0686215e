from pydantic import BaseModel, ConfigDict, constr, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BookCreate(CamelModel):
    isbn: constr(strip_whitespace=True, min_length=1)
    title: constr(strip_whitespace=True, min_length=1)
    author: constr(strip_whitespace=True, min_length=1)
    publisher: Optional[str] = None
    year: Optional[int] = None
    total_copies: Optional[int] = None

    @field_validator('total_copies')
    @classmethod
    def ensure_non_negative_copies(cls, v):
        if v is not None and v < 0:
            raise ValueError('totalCopies must be >= 0')
        return v


class BookOut(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    book_id: int
    isbn: str
    title: str
    author: str
    publisher: Optional[str] = None
    year_published: Optional[int] = None
    total_copies: int
    available_copies: int


class BookCreated(CamelModel):
    book_id: int


class MemberCreate(CamelModel):
    member_code: constr(strip_whitespace=True, min_length=1)
    full_name: constr(strip_whitespace=True, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class MemberOut(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    member_id: int
    member_code: str
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class MemberCreated(CamelModel):
    member_id: int


class BorrowRequest(CamelModel):
    book_id: Optional[int] = None
    member_id: Optional[int] = None
    days: Optional[int] = None

    @field_validator('days', mode='before')
    @classmethod
    def drop_non_integer_days(cls, v):
        # anything but a plain integer falls back to the default loan period
        if isinstance(v, bool) or not isinstance(v, int):
            return None
        return v


class ReturnRequest(CamelModel):
    loan_id: Optional[int] = None


class OperationResult(CamelModel):
    ok: bool = True
    loan_id: Optional[int] = None


class LoanView(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    loan_id: int
    book_id: int
    title: str
    member_id: int
    full_name: str
    borrow_date: datetime
    due_date: datetime
    return_date: Optional[datetime] = None
    is_returned: bool
