"""
Request models for the HTTP surface.

Reference data is validated here, at the store boundary, and converted to
the engine's frozen value types.
"""
import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from bank_recon.common.models import (
    Client,
    CompanyInfo,
    ExistingTransaction,
    LedgerStatus,
)


class ClientIn(BaseModel):
    id: str = Field(min_length=1)
    name: str = ''
    company: str = ''
    bin: str = ''
    legal_name: str = ''

    def to_model(self) -> Client:
        return Client(**self.model_dump())


class ExistingTransactionIn(BaseModel):
    id: str = Field(min_length=1)
    client_id: str
    amount: Decimal
    date: datetime.date
    is_income: bool = True
    description: str = ''
    reconciliation_status: Optional[LedgerStatus] = None
    bank_document_number: str = ''
    bank_client_name: str = ''
    bank_date: Optional[datetime.date] = None

    @field_validator('amount')
    @classmethod
    def amount_not_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError('amount must be unsigned; direction goes in is_income')
        return v

    def to_model(self) -> ExistingTransaction:
        return ExistingTransaction(**self.model_dump())


class CompanyIn(BaseModel):
    bin: str = ''
    iban: str = ''

    def to_model(self) -> CompanyInfo:
        return CompanyInfo(bin=self.bin.strip(), iban=self.iban.strip())


class AliasIn(BaseModel):
    bank_name: str = ''
    bank_bin: str = ''
    client_id: str = Field(min_length=1)

    @model_validator(mode='after')
    def name_or_bin(self):
        if not self.bank_name.strip() and not self.bank_bin.strip():
            raise ValueError('bank_name or bank_bin is required')
        return self


class CommitRequest(BaseModel):
    selected: Optional[List[int]] = None
    overrides: Dict[int, str] = Field(default_factory=dict)
    include_duplicates: bool = False
