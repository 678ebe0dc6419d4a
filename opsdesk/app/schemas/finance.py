"""
Finance Schemas.

Request and response models for settlements, settlement accounts and
fiscal-day reporting.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List, Dict, Literal

from opsdesk.app.domain.finance.debt import DebtBand
from opsdesk.app.domain.finance.fiscal_window import FiscalDay, FiscalSelector
from opsdesk.app.models.finance_enums import SettlementStatus, PaymentContentType, PaymentMethod


# Shared nested shapes

class TechnicianSummary(BaseModel):
    id: int
    technician_number: int
    name: str
    username: str
    city_id: Optional[int] = None

    class Config:
        from_attributes = True


class OrderSummary(BaseModel):
    id: int
    order_number: str
    service_name: Optional[str] = None
    service_duration: int
    total_amount: float
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Fiscal window and debt

class FiscalWindowResponse(BaseModel):
    selector: FiscalSelector
    business_date: str
    start_utc: str
    end_utc: str


class DebtClassificationResponse(BaseModel):
    band: DebtBand
    ratio: float
    progress: float


# Settlements

class SettlementPaymentUpdate(BaseModel):
    """Editable payment fields of a pending settlement. All optional."""
    actual_paid_amount: Optional[float] = Field(None, ge=0, allow_inf_nan=False, description="Amount actually collected (RMB)")
    payment_notes: Optional[str] = Field(None, max_length=2000)
    platform_should_get: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    notes: Optional[str] = Field(None, max_length=2000)
    customer_paid_to_platform: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    payment_content_type: Optional[PaymentContentType] = None
    payment_method: Optional[PaymentMethod] = None

    @field_validator("platform_should_get", "customer_paid_to_platform")
    @classmethod
    def amount_not_null(cls, value: Optional[float]) -> float:
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class SettlementRejectRequest(BaseModel):
    reason: str = Field(..., description="Why the settlement is rejected")


class BatchSettleRequest(BaseModel):
    settlement_ids: List[int] = Field(..., min_length=1, max_length=500)


class BatchSettleResponse(BaseModel):
    succeeded: int
    failed: int
    failures: Dict[int, str] = {}
    message: str


class SettlementActionResponse(BaseModel):
    settlement_id: int
    status: SettlementStatus
    message: str


class SettlementResponse(BaseModel):
    id: int
    order_id: int
    technician_id: int
    service_fee: float
    extra_fee: float
    service_commission_rate: float
    extra_commission_rate: float
    platform_should_get: float
    customer_paid_to_platform: float
    actual_paid_amount: Optional[float] = None
    payment_content_type: Optional[PaymentContentType] = None
    payment_method: Optional[PaymentMethod] = None
    payment_notes: Optional[str] = None
    notes: Optional[str] = None
    settlement_status: SettlementStatus
    settled_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    reject_reason: Optional[str] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    technician: Optional[TechnicianSummary] = None
    order: Optional[OrderSummary] = None
    fiscal_day: Optional[FiscalDay] = None

    class Config:
        from_attributes = True


class SettlementListFilters(BaseModel):
    status: Optional[SettlementStatus] = None
    technician_id: Optional[int] = None
    order_number: Optional[str] = None
    platform_collected: Optional[bool] = None
    fiscal_day: Optional[FiscalSelector] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    amount_min: Optional[float] = Field(None, ge=0)
    amount_max: Optional[float] = Field(None, ge=0)
    sort_by: Literal["created_at", "service_fee", "platform_should_get"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=100)


class SettlementListResponse(BaseModel):
    settlements: List[SettlementResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


# Accounts

class SettlementAccountResponse(BaseModel):
    id: int
    technician_id: int
    deposit_amount: float
    balance: float
    platform_collected_rmb_balance: float
    currency: str
    updated_at: datetime
    technician: Optional[TechnicianSummary] = None
    debt: DebtClassificationResponse


class AccountListFilters(BaseModel):
    search: Optional[str] = None
    city_id: Optional[int] = None
    debt_status: Optional[DebtBand] = None
    balance_min: Optional[float] = None
    balance_max: Optional[float] = None
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=100)


class AccountListResponse(BaseModel):
    accounts: List[SettlementAccountResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    band_counts: Dict[DebtBand, int]


class DepositUpdateRequest(BaseModel):
    deposit_amount: float = Field(..., ge=0, allow_inf_nan=False)


# Reporting

class FinanceDayStats(BaseModel):
    window: FiscalWindowResponse
    total_count: int
    pending_count: int
    settled_count: int
    rejected_count: int
    platform_should_get_total: float
    actual_paid_total: float


class PendingOverview(BaseModel):
    pending_settlements_count: int
    today_pending_count: int
    yesterday_pending_count: int
    older_pending_count: int
    pending_transactions_count: int
