"""
Settlement transaction schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from opsdesk.app.models.finance_enums import TransactionType, TransactionStatus
from opsdesk.app.schemas.finance import TechnicianSummary


class TransactionResponse(BaseModel):
    id: int
    technician_id: int
    transaction_type: TransactionType
    amount: float
    exchange_rate: Optional[float] = None
    service_fee_rate: Optional[float] = None
    actual_amount_thb: Optional[float] = None
    payment_method: Optional[str] = None
    payment_proof_url: Optional[str] = None
    status: TransactionStatus
    operator_id: Optional[int] = None
    notes: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    created_at: datetime
    technician: Optional[TechnicianSummary] = None

    class Config:
        from_attributes = True


class TransactionListFilters(BaseModel):
    transaction_type: Optional[TransactionType] = None
    status: Optional[TransactionStatus] = None
    city_id: Optional[int] = None
    search: Optional[str] = None
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=100)


class TransactionListResponse(BaseModel):
    transactions: List[TransactionResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class TransactionStats(BaseModel):
    pending_count: int
    today_confirmed_count: int
    today_settlement_amount: float
    today_withdrawal_amount: float


class ApproveTransactionRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=2000)


class RejectTransactionRequest(BaseModel):
    reason: str = Field(..., description="Shown to the technician")


class TransactionActionResponse(BaseModel):
    transaction_id: int
    status: TransactionStatus
    message: str
