#!/usr/bin/env python3
# models.py
"""
Records returned by the AMC GraphQL service.

The service owns persistence and every computed figure; these classes only
parse its payloads so views and forms work with attributes instead of dicts.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class RecordStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ProposalStatus(str, Enum):
    NEW = "new"
    SENT = "sent"
    PENDING = "pending"
    ON_PROCESS = "on process"
    ACCEPTED = "accepted"
    PAYMENT_DUE = "paymentdue"
    PAID = "paid"
    ACTIVE = "active"
    EXPIRED = "expired"
    ON_RENEW = "on renew"

    @property
    def label(self) -> str:
        if self is ProposalStatus.PAYMENT_DUE:
            return "Payment Due"
        return self.value.title()


RECORD_STATUS_OPTIONS = [(s.value, s.value.title()) for s in RecordStatus]
PROPOSAL_STATUS_OPTIONS = [(s.value, s.label) for s in ProposalStatus]


class Record(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    createdat: Optional[str] = None
    updatedat: Optional[str] = None


class Ref(BaseModel):
    """Embedded {id, name} projection used by list queries."""
    model_config = ConfigDict(extra="ignore")

    id: int
    name: Optional[str] = None
    displayName: Optional[str] = None
    email: Optional[str] = None
    invoiceNo: Optional[str] = None
    model: Optional[str] = None
    brand: Optional["Ref"] = None
    category: Optional["Ref"] = None


class AdminUser(Record):
    email: str
    name: str
    role: str
    status: str = RecordStatus.ACTIVE.value


class MailSetup(Record):
    smtphost: str = ""
    smtpport: int = 587
    smtpuser: str = ""
    smtppassword: str = ""
    enablessl: bool = True
    sendername: str = ""
    senderemail: str = ""


class CustomerLocation(Record):
    customerId: int
    displayName: str
    location: Optional[str] = None
    contactPerson: Optional[str] = None
    email: Optional[str] = None
    phone1: Optional[str] = None
    phone2: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pin: Optional[str] = None
    gstin: Optional[str] = None
    pan: Optional[str] = None
    status: str = RecordStatus.ACTIVE.value
    customer: Optional[Ref] = None


class Customer(Record):
    name: str
    details: Optional[str] = None
    contactPerson: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    status: str = RecordStatus.ACTIVE.value
    locations: List[CustomerLocation] = []


class Brand(Record):
    name: str
    details: Optional[str] = None
    status: str = RecordStatus.ACTIVE.value


class Category(Record):
    name: str
    details: Optional[str] = None
    status: str = RecordStatus.ACTIVE.value


class Product(Record):
    name: str
    details: Optional[str] = None
    brandId: Optional[int] = None
    categoryId: Optional[int] = None
    model: Optional[str] = None
    status: str = RecordStatus.ACTIVE.value
    brand: Optional[Ref] = None
    category: Optional[Ref] = None


class InvoiceItem(Record):
    invoiceId: Optional[int] = None
    productId: int
    serialNo: Optional[str] = None
    quantity: int
    amount: float
    product: Optional[Ref] = None


class Invoice(Record):
    customerId: int
    locationId: Optional[int] = None
    invoiceNo: str
    invoiceDate: str
    total: float = 0
    discount: float = 0
    subtotal: float = 0
    grandTotal: float = 0
    status: str = RecordStatus.ACTIVE.value
    customer: Optional[Ref] = None
    location: Optional[Ref] = None
    items: List[InvoiceItem] = []


class ProposalItem(Record):
    proposalId: Optional[int] = None
    locationId: Optional[int] = None
    invoiceId: int
    productId: int
    serialno: Optional[str] = None
    saccode: Optional[str] = None
    quantity: int
    rate: float
    amount: float
    location: Optional[Ref] = None
    invoice: Optional[Ref] = None
    product: Optional[Ref] = None


class AmcProposal(Record):
    proposalno: str
    proposaldate: str
    amcstartdate: str
    amcenddate: str
    customerId: int
    contractno: Optional[str] = None
    billingaddress: Optional[str] = None
    doclink: Optional[str] = None
    termsconditions: Optional[str] = None
    total: float = 0
    additionalcharge: float = 0
    discount: float = 0
    taxrate: float = 0
    taxamount: float = 0
    grandtotal: float = 0
    proposalstatus: str = ProposalStatus.NEW.value
    customer: Optional[Ref] = None
    items: List[ProposalItem] = []


class ProposalDocument(Record):
    proposalno: str
    doclink: str
    createdby: Optional[str] = None


class EmailRecord(Record):
    proposalno: str
    email: str
    status: str
    sentby: Optional[str] = None
    message: Optional[str] = None


class Pagination(BaseModel):
    page: int = 1
    limit: int = 10
    total: int = 0
    totalPages: int = 0


class Page(BaseModel):
    """One page of a list query: rows plus the pagination descriptor."""
    rows: list = []
    pagination: Pagination = Pagination()


def parse_page(payload: Optional[dict], record_cls) -> Page:
    if not payload:
        return Page()
    rows = [record_cls.model_validate(r) for r in payload.get("data") or []]
    pagination = Pagination.model_validate(payload.get("pagination") or {})
    return Page(rows=rows, pagination=pagination)


Ref.model_rebuild()
