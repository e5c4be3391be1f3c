"""
API Schemas

Pydantic models for request bodies and responses. Input models reject
unknown fields; output models read straight from the ORM rows.
"""

from datetime import date as date_type
from typing import Annotated, List, Literal, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    field_validator,
)

TransactionType = Literal["income", "expense"]
Period = Literal["daily", "monthly", "yearly"]

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
HexColor = Annotated[str, StringConstraints(pattern=r"^#[0-9A-Fa-f]{6}$")]


class StrictInput(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ----------------------------------------------------------------------------
# Auth
# ----------------------------------------------------------------------------
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserRegister(StrictInput):
    name: NonEmptyStr = Field(..., max_length=120, description="Full name")
    email: EmailStr
    password: str = Field(..., min_length=8)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: EmailStr


# ----------------------------------------------------------------------------
# Account & transactions
# ----------------------------------------------------------------------------
class AccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    balance: float
    total_income: float
    total_expenses: float


class TransactionIn(StrictInput):
    type: TransactionType = Field(..., description="Income or expense")
    category: NonEmptyStr = Field(..., max_length=64, description="Category name such as Salary or Food")
    amount: float = Field(..., gt=0, allow_inf_nan=False, description="Positive amount")
    sender: NonEmptyStr = Field(..., max_length=120)
    receiver: NonEmptyStr = Field(..., max_length=120)
    date: date_type = Field(..., description="Transaction date")
    note: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("note", "description"),
        description="Optional note",
    )

    @field_validator("amount")
    @classmethod
    def round_to_cents(cls, v: float) -> float:
        v = round(v, 2)
        if v <= 0:
            raise ValueError("amount must be at least 0.01")
        return v

    @field_validator("note")
    @classmethod
    def blank_note_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: TransactionType
    category: str
    amount: float
    sender: str
    receiver: str
    date: date_type
    note: Optional[str] = None


class LedgerResult(BaseModel):
    transaction: TransactionOut
    account: AccountOut


# ----------------------------------------------------------------------------
# Categories
# ----------------------------------------------------------------------------
class CategoryIn(StrictInput):
    name: NonEmptyStr = Field(..., max_length=64)
    emoji: NonEmptyStr = Field(..., max_length=16)
    icon: NonEmptyStr = Field("tag", max_length=64)
    color: Optional[HexColor] = None
    type: TransactionType = "expense"
    monthly_budget: Optional[float] = Field(None, gt=0, allow_inf_nan=False)


class CategoryUpdate(StrictInput):
    name: NonEmptyStr = Field(..., max_length=64)
    icon: Optional[NonEmptyStr] = Field(None, max_length=64)
    emoji: Optional[NonEmptyStr] = Field(None, max_length=16)
    color: Optional[HexColor] = None
    monthly_budget: Optional[float] = Field(None, gt=0, allow_inf_nan=False)


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    icon: str
    emoji: str
    color: str
    type: TransactionType
    monthly_budget: Optional[float] = None
    is_default: bool


class BootstrapResult(BaseModel):
    created: bool
    categories: List[CategoryOut]


# ----------------------------------------------------------------------------
# Budget & summaries
# ----------------------------------------------------------------------------
class BudgetLimitIn(StrictInput):
    monthly_limit: float = Field(..., gt=0, allow_inf_nan=False)


class BudgetLimitOut(BaseModel):
    monthly_limit: Optional[float] = None


class BudgetStatus(BaseModel):
    monthly_limit: Optional[float] = None
    total_expenses: float
    over_limit: bool


class CategorySummary(BaseModel):
    category: str
    total: float
    count: int


class CategoryBreakdownItem(BaseModel):
    category: str
    type: TransactionType
    total: float


class MonthlyTrendRow(BaseModel):
    month: str
    income: float
    expense: float


class DashboardTotals(BaseModel):
    total_income: float
    total_expenses: float
    net_balance: float


class Dashboard(BaseModel):
    totals: DashboardTotals
    category_breakdown: List[CategoryBreakdownItem]
    monthly_trend: List[MonthlyTrendRow]


class ReportItem(BaseModel):
    label: str
    income: float
    expense: float
    balance: float


class Message(BaseModel):
    message: str
