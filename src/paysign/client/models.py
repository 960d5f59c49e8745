"""Request payloads for the partner disbursement API.

Field names follow the partner's wire format (camelCase) so ``model_dump``
output can be signed and sent as-is.
"""
from typing import Optional

from pydantic import BaseModel


class TransferInquiryRequest(BaseModel):
    destinationAccountNumber: str
    destinationBankCode: str
    amount: int
    channelId: str
    partnerReferenceNo: Optional[str] = None


class TransferOutRequest(BaseModel):
    destinationAccountNumber: str
    destinationAccountName: str
    destinationBankCode: str
    amount: int
    channelId: str
    inquiryId: str
    partnerReferenceNo: str


class JournalQuery(BaseModel):
    limit: int = 10
    page: int = 1
    walletId: Optional[str] = None
    entryType: Optional[str] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    order: Optional[str] = None
