"""
Pydantic schemas for request/response validation.
API payloads use camelCase keys; Python code uses snake_case field names.
"""
from datetime import date, datetime
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from core.normalize import end_bound, from_db_timestamp, start_bound
from core.security import MAX_PASSWORD_BYTES

TransactionType = Literal["income", "expenditure"]
PaymentMethod = Literal["cash", "card", "bank_transfer", "upi", "other"]
Period = Literal["weekly", "monthly", "yearly"]

Timestamp = Annotated[datetime, BeforeValidator(from_db_timestamp)]


def parse_date_bound(v):
    """
    Keep a bare YYYY-MM-DD as a date so it can cover the whole day.

    Anything longer is left to the datetime parser.
    """
    if isinstance(v, str):
        v = v.strip()
        if len(v) == 10:
            return date.fromisoformat(v)
    return v


DateBound = Annotated[Union[datetime, date], BeforeValidator(parse_date_bound)]


def strip_text(v):
    """Trim surrounding whitespace from optional text fields."""
    if isinstance(v, str):
        return v.strip()
    return v


class ApiModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class UserOut(ApiModel):
    id: int
    name: str
    email: str
    created_at: Timestamp


class RegisterRequest(ApiModel):
    name: Annotated[str, BeforeValidator(strip_text)] = Field(..., min_length=1, max_length=100)
    email: Annotated[str, BeforeValidator(strip_text)] = Field(..., max_length=254)
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        local, _, domain = v.partition("@")
        if not local or "." not in domain or " " in v:
            raise ValueError("Invalid email address")
        return v.lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if not any(c.isalpha() for c in v) or not any(c.isdigit() for c in v):
            raise ValueError("Password must contain at least one letter and one number")
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v


class LoginRequest(ApiModel):
    email: Annotated[str, BeforeValidator(strip_text)]
    password: str


class AccessToken(ApiModel):
    token: str
    expires: Timestamp


class TokenBundle(ApiModel):
    access: AccessToken


class AuthResponse(ApiModel):
    user: UserOut
    tokens: TokenBundle


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

class CategoryCreate(ApiModel):
    name: Annotated[str, BeforeValidator(strip_text)] = Field(..., min_length=1, max_length=50)
    type: TransactionType
    color: Annotated[str, BeforeValidator(strip_text)] = Field(..., min_length=1, max_length=32)


class CategoryUpdate(ApiModel):
    name: Annotated[Optional[str], BeforeValidator(strip_text)] = Field(None, min_length=1, max_length=50)
    type: Optional[TransactionType] = None
    color: Annotated[Optional[str], BeforeValidator(strip_text)] = Field(None, min_length=1, max_length=32)

    @model_validator(mode="after")
    def check_not_empty(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class CategoryOut(ApiModel):
    id: int
    name: str
    type: TransactionType
    color: str
    created_at: Timestamp
    updated_at: Timestamp


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

class TransactionCreate(ApiModel):
    party: Annotated[Optional[str], BeforeValidator(strip_text)] = Field(None, max_length=200)
    category: Annotated[str, BeforeValidator(strip_text)] = Field(..., min_length=1, max_length=50)
    type: TransactionType
    currency: Optional[str] = Field(None, min_length=1, max_length=10)
    amount: float = Field(..., ge=0)
    description: Optional[str] = Field(None, max_length=1000)
    payment_method: PaymentMethod = "cash"
    created_at: Optional[datetime] = None


class TransactionUpdate(ApiModel):
    party: Annotated[Optional[str], BeforeValidator(strip_text)] = Field(None, max_length=200)
    category: Annotated[Optional[str], BeforeValidator(strip_text)] = Field(None, min_length=1, max_length=50)
    type: Optional[TransactionType] = None
    currency: Optional[str] = Field(None, min_length=1, max_length=10)
    amount: Optional[float] = Field(None, ge=0)
    description: Optional[str] = Field(None, max_length=1000)
    payment_method: Optional[PaymentMethod] = None
    created_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_not_empty(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        for name in ("category", "type", "currency", "amount", "payment_method", "created_at"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self


class TransactionOut(ApiModel):
    id: int
    party: Optional[str] = None
    category: str
    type: TransactionType
    currency: str
    amount: float
    description: Optional[str] = None
    payment_method: PaymentMethod
    created_at: Timestamp
    updated_at: Timestamp


class TransactionFilters(ApiModel):
    """Filters accepted by the transaction listing, totals and export."""
    category: Optional[str] = None
    type: Optional[TransactionType] = None
    party: Optional[str] = None
    amount: Optional[float] = None
    payment_methods: List[PaymentMethod] = Field(default_factory=list)
    from_date: Optional[DateBound] = None
    to_date: Optional[DateBound] = None

    @model_validator(mode="after")
    def check_date_range(self):
        if self.from_date and self.to_date and end_bound(self.to_date) < start_bound(self.from_date):
            raise ValueError("To Date must be equal to or after From Date")
        return self


class BreakdownItem(ApiModel):
    name: str
    value: float
    count: int


class TransactionPage(ApiModel):
    results: List[TransactionOut]
    page: int
    limit: int
    total_pages: int
    total_results: int
    total_income: float
    total_expenditure: float
    total_transactions: int
    total_balance: float
    income_breakdown: List[BreakdownItem]
    expenditure_breakdown: List[BreakdownItem]


class StatsPoint(ApiModel):
    date: str
    income: float = 0.0
    expenditure: float = 0.0


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------

class BudgetCreate(ApiModel):
    category: Annotated[str, BeforeValidator(strip_text)] = Field(..., min_length=1, max_length=50)
    limit: float = Field(..., gt=0)
    period: Period = "monthly"


class BudgetUpdate(ApiModel):
    category: Annotated[Optional[str], BeforeValidator(strip_text)] = Field(None, min_length=1, max_length=50)
    limit: Optional[float] = Field(None, gt=0)
    period: Optional[Period] = None

    @model_validator(mode="after")
    def check_not_empty(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class BudgetOut(ApiModel):
    id: int
    category: str
    limit: float
    period: Period
    spent: float
    remaining: float
    percentage: float
    status: Literal["ok", "near", "over"]
    created_at: Timestamp
    updated_at: Timestamp


class BudgetSummary(ApiModel):
    total_budget: float
    total_spent: float
    remaining: float
    over_budget_count: int
    near_limit_count: int
    usage_percentage: float


# ---------------------------------------------------------------------------
# LLM extraction
# ---------------------------------------------------------------------------

def unwrap_transactions(v):
    """Accept a bare JSON array, a single object, or an object holding one."""
    if isinstance(v, list):
        return {"transactions": v}
    if isinstance(v, dict) and "transactions" not in v:
        if "transaction" in v:
            return {"transactions": [v["transaction"]]}
        if "amount" in v:
            return {"transactions": [v]}
    return v


def stringify(v):
    """LLMs occasionally return numbers or nulls for text fields."""
    if v is None:
        return None
    return str(v)


class ExtractedTransaction(BaseModel):
    """One transaction as returned by the LLM, before normalization."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    date: Annotated[Optional[str], BeforeValidator(stringify)] = None
    party: Annotated[Optional[str], BeforeValidator(stringify)] = None
    amount: Any = None
    type: Annotated[Optional[str], BeforeValidator(stringify)] = None
    payment_method: Annotated[Optional[str], BeforeValidator(stringify)] = Field(None, alias="paymentMethod")
    category: Annotated[Optional[str], BeforeValidator(stringify)] = None
    description: Annotated[Optional[str], BeforeValidator(stringify)] = None


class ExtractionBatch(BaseModel):
    """Wrapper for the list of extracted transactions."""
    transactions: List[ExtractedTransaction]

    @model_validator(mode="before")
    @classmethod
    def unwrap(cls, v):
        return unwrap_transactions(v)


class ExtractedTransactionOut(ApiModel):
    """Normalized draft transaction returned to the client for review."""
    date: Optional[str] = None
    party: Optional[str] = None
    amount: float
    type: TransactionType
    payment_method: PaymentMethod
    category: str
    currency: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
