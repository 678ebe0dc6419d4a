"""
Enums for settlement records and settlement transactions.
"""

import enum


class SettlementStatus(str, enum.Enum):
    """pending -> settled | rejected; both targets are terminal."""
    PENDING = "pending"
    SETTLED = "settled"
    REJECTED = "rejected"


class PaymentContentType(str, enum.Enum):
    DEPOSIT = "deposit"
    FULL_AMOUNT = "full_amount"
    TIP = "tip"
    OTHER = "other"


class PaymentMethod(str, enum.Enum):
    WECHAT = "wechat"
    ALIPAY = "alipay"
    THB_BANK_TRANSFER = "thb_bank_transfer"
    CREDIT_CARD = "credit_card"
    CASH = "cash"
    OTHER = "other"


class TransactionType(str, enum.Enum):
    SETTLEMENT = "settlement"  # technician pays the platform
    WITHDRAWAL = "withdrawal"  # platform pays out collected funds


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
