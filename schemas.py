#!/usr/bin/env python3
# schemas.py
"""
Form schemas.

Browsers post every field as a string, so each schema keeps string fields and
checks presence/format only; `to_input()` turns a valid form into the typed
payload the API expects. Blank optional fields are dropped from the payload
instead of being sent as "" so an update never blanks a stored value.
"""
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar, Dict, FrozenSet, Optional, Type

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from models import ProposalStatus, RecordStatus


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def parse_decimal(value: Any) -> Optional[Decimal]:
    if _blank(value):
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


class FormSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore", validate_default=True)

    # field -> message shown when the field is blank
    REQUIRED: ClassVar[Dict[str, str]] = {}
    INTEGERS: ClassVar[FrozenSet[str]] = frozenset()
    DECIMALS: ClassVar[FrozenSet[str]] = frozenset()
    DATES: ClassVar[FrozenSet[str]] = frozenset()
    EMAILS: ClassVar[Dict[str, str]] = {}
    CHOICES: ClassVar[Dict[str, Type]] = {}
    # decimals sent as 0 when left blank
    ZERO_IF_BLANK: ClassVar[FrozenSet[str]] = frozenset()

    @field_validator("*", mode="before")
    @classmethod
    def _presence(cls, value, info: ValidationInfo):
        if value is None:
            value = ""
        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            value = str(value)
        message = cls.REQUIRED.get(info.field_name)
        if message and _blank(value):
            raise PydanticCustomError("required", message)
        return value

    @field_validator("*", mode="after")
    @classmethod
    def _format(cls, value, info: ValidationInfo):
        name = info.field_name
        if _blank(value):
            return value
        if name in cls.INTEGERS:
            if not str(value).lstrip("-").isdigit():
                raise PydanticCustomError("integer", "Enter a whole number")
            if name == "quantity" and int(value) < 1:
                raise PydanticCustomError("positive", "Quantity must be at least 1")
        if name in cls.DECIMALS:
            number = parse_decimal(value)
            if number is None:
                raise PydanticCustomError("decimal", "Enter a valid number")
            if number < 0:
                raise PydanticCustomError("negative", "Value cannot be negative")
        if name in cls.DATES:
            try:
                date.fromisoformat(value)
            except ValueError:
                raise PydanticCustomError("date", "Enter a valid date (YYYY-MM-DD)")
        if name in cls.EMAILS:
            # shape only: no DNS lookup, and internal domains such as .local or .test are fine
            try:
                validate_email(value, check_deliverability=False, globally_deliverable=False)
            except EmailNotValidError:
                raise PydanticCustomError("email", cls.EMAILS[name])
        if name in cls.CHOICES:
            allowed = {c.value for c in cls.CHOICES[name]}
            if value not in allowed:
                raise PydanticCustomError("choice", "Select a valid option")
        return value

    def to_input(self, create: bool = True) -> Dict[str, Any]:
        payload = {}
        for name, value in self.model_dump().items():
            if isinstance(value, bool):
                payload[name] = value
                continue
            if _blank(value):
                if name in self.ZERO_IF_BLANK:
                    payload[name] = 0.0
                continue
            if name in self.INTEGERS:
                payload[name] = int(value)
            elif name in self.DECIMALS:
                payload[name] = float(parse_decimal(value))
            else:
                payload[name] = value
        return payload


class LoginForm(FormSchema):
    REQUIRED = {"email": "Email is required", "password": "Password is required"}
    EMAILS = {"email": "Invalid email"}

    email: str = ""
    password: str = ""


class CustomerForm(FormSchema):
    REQUIRED = {"name": "Name is required"}
    EMAILS = {"email": "Invalid email"}
    CHOICES = {"status": RecordStatus}

    name: str = ""
    details: str = ""
    contactPerson: str = ""
    email: str = ""
    address: str = ""
    status: str = RecordStatus.ACTIVE.value


class LocationForm(FormSchema):
    REQUIRED = {"customerId": "Customer is required", "displayName": "Display name is required"}
    INTEGERS = frozenset({"customerId"})
    EMAILS = {"email": "Invalid email"}
    CHOICES = {"status": RecordStatus}

    customerId: str = ""
    displayName: str = ""
    location: str = ""
    contactPerson: str = ""
    email: str = ""
    phone1: str = ""
    phone2: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    pin: str = ""
    gstin: str = ""
    pan: str = ""
    status: str = RecordStatus.ACTIVE.value


class BrandForm(FormSchema):
    REQUIRED = {"name": "Name is required"}
    CHOICES = {"status": RecordStatus}

    name: str = ""
    details: str = ""
    status: str = RecordStatus.ACTIVE.value


class CategoryForm(BrandForm):
    pass


class ProductForm(FormSchema):
    REQUIRED = {
        "name": "Name is required",
        "brandId": "Brand is required",
        "categoryId": "Category is required",
    }
    INTEGERS = frozenset({"brandId", "categoryId"})
    CHOICES = {"status": RecordStatus}

    name: str = ""
    model: str = ""
    details: str = ""
    brandId: str = ""
    categoryId: str = ""
    status: str = RecordStatus.ACTIVE.value


class InvoiceForm(FormSchema):
    REQUIRED = {
        "customerId": "Customer is required",
        "invoiceNo": "Invoice number is required",
        "invoiceDate": "Invoice date is required",
    }
    INTEGERS = frozenset({"customerId", "locationId"})
    DECIMALS = frozenset({"discount"})
    ZERO_IF_BLANK = frozenset({"discount"})
    DATES = frozenset({"invoiceDate"})
    CHOICES = {"status": RecordStatus}

    customerId: str = ""
    locationId: str = ""
    invoiceNo: str = ""
    invoiceDate: str = ""
    discount: str = "0"
    status: str = RecordStatus.ACTIVE.value

    def to_input(self, create: bool = True) -> Dict[str, Any]:
        payload = super().to_input(create)
        if create:
            # the create input requires the totals; the service recomputes them from items
            payload.update(total=0.0, subtotal=0.0, grandTotal=0.0)
        return payload


class InvoiceItemForm(FormSchema):
    REQUIRED = {
        "productId": "Product is required",
        "quantity": "Quantity is required",
        "amount": "Amount is required",
    }
    INTEGERS = frozenset({"productId", "quantity"})
    DECIMALS = frozenset({"amount"})

    productId: str = ""
    serialNo: str = ""
    quantity: str = "1"
    amount: str = "0"


class ProposalForm(FormSchema):
    REQUIRED = {
        "proposalno": "Proposal number is required",
        "proposaldate": "Proposal date is required",
        "amcstartdate": "AMC start date is required",
        "amcenddate": "AMC end date is required",
        "customerId": "Customer is required",
    }
    INTEGERS = frozenset({"customerId"})
    DECIMALS = frozenset({"additionalcharge", "discount", "taxrate"})
    ZERO_IF_BLANK = DECIMALS
    DATES = frozenset({"proposaldate", "amcstartdate", "amcenddate"})
    CHOICES = {"proposalstatus": ProposalStatus}

    proposalno: str = ""
    proposaldate: str = ""
    amcstartdate: str = ""
    amcenddate: str = ""
    customerId: str = ""
    contractno: str = ""
    billingaddress: str = ""
    additionalcharge: str = "0"
    discount: str = "0"
    taxrate: str = "0"
    proposalstatus: str = ProposalStatus.NEW.value


class ProposalItemForm(FormSchema):
    REQUIRED = {
        "invoiceId": "Invoice is required",
        "productId": "Product is required",
        "quantity": "Quantity is required",
        "rate": "Rate is required",
        "amount": "Amount is required",
    }
    INTEGERS = frozenset({"locationId", "invoiceId", "productId", "quantity"})
    DECIMALS = frozenset({"rate", "amount"})

    locationId: str = ""
    invoiceId: str = ""
    productId: str = ""
    serialno: str = ""
    saccode: str = ""
    quantity: str = "1"
    rate: str = "0"
    amount: str = "0"


class MailSetupForm(FormSchema):
    REQUIRED = {
        "smtphost": "SMTP host is required",
        "smtpport": "SMTP port is required",
        "smtpuser": "SMTP user is required",
        "smtppassword": "SMTP password is required",
        "sendername": "Sender name is required",
        "senderemail": "Invalid email address",
    }
    INTEGERS = frozenset({"smtpport"})
    EMAILS = {"senderemail": "Invalid email address"}

    smtphost: str = ""
    smtpport: str = "587"
    smtpuser: str = ""
    smtppassword: str = ""
    enablessl: bool = False
    sendername: str = ""
    senderemail: str = ""


class SendEmailForm(FormSchema):
    REQUIRED = {"email": "Recipient email is required"}
    EMAILS = {"email": "Invalid email address"}

    email: str = ""
    message: str = ""
