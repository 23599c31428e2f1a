#!/usr/bin/env python3
# resources.py
"""
Per-entity description consumed by the generic list/form/delete views:
which documents to call, how the form looks, which columns the list shows.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from flask import current_app

import mutations
import queries
from forms import a_year_from_today, today
from formatting import money as _money, nice_date as _nice_date
from models import (
    PROPOSAL_STATUS_OPTIONS, RECORD_STATUS_OPTIONS, AmcProposal, Brand, Category, Customer,
    Invoice, Product,
)
from schemas import (
    BrandForm, CategoryForm, CustomerForm, FormSchema, InvoiceForm, InvoiceItemForm, LocationForm,
    ProductForm, ProposalForm, ProposalItemForm,
)


def money(amount) -> str:
    return _money(amount, current_app.config["CURRENCY"], current_app.config["LOCALE"])


def nice_date(value) -> str:
    return _nice_date(value, current_app.config["LOCALE"])


@dataclass
class FormField:
    name: str
    label: str
    kind: str = "text"  # text, textarea, email, date, number, select, checkbox, hidden
    options: Optional[str] = None  # option source name, see OPTION_SOURCES
    choices: Optional[List[Tuple[str, str]]] = None
    placeholder: str = ""
    readonly: bool = False
    step: Optional[str] = None


@dataclass
class Column:
    label: str
    render: Callable[[Any], Any]
    badge: bool = False


@dataclass
class Resource:
    slug: str
    title: str
    entity: str
    record_cls: Type
    schema: Type[FormSchema]
    list_doc: str
    list_root: str
    get_doc: str
    get_root: str
    create_doc: str
    update_doc: str
    delete_doc: str
    fields: List[FormField]
    columns: List[Column]
    subtitle: str = ""
    defaults: Callable[[], Dict[str, Any]] = dict
    status_options: List[Tuple[str, str]] = field(default_factory=lambda: list(RECORD_STATUS_OPTIONS))
    search_placeholder: str = "Search..."
    has_detail: bool = False
    label: Callable[[Any], str] = lambda r: getattr(r, "name", None) or f"#{r.id}"


def _status(field_name="status"):
    return FormField(field_name, "Status", "select", choices=RECORD_STATUS_OPTIONS)


def _ref(attr, name="name"):
    def render(row):
        ref = getattr(row, attr, None)
        return getattr(ref, name, None) or "-"
    return render


CUSTOMERS = Resource(
    slug="customers",
    title="Customers",
    entity="Customer",
    subtitle="Manage customers and their locations",
    record_cls=Customer,
    schema=CustomerForm,
    list_doc=queries.GET_CUSTOMERS, list_root="customers",
    get_doc=queries.GET_CUSTOMER, get_root="customer",
    create_doc=mutations.CREATE_CUSTOMER, update_doc=mutations.UPDATE_CUSTOMER,
    delete_doc=mutations.DELETE_CUSTOMER,
    fields=[
        FormField("name", "Name", placeholder="Customer name"),
        FormField("contactPerson", "Contact Person"),
        FormField("email", "Email", "email", placeholder="name@example.com"),
        FormField("details", "Details", "textarea"),
        FormField("address", "Address", "textarea"),
        _status(),
    ],
    columns=[
        Column("Name", lambda r: r.name),
        Column("Contact Person", lambda r: r.contactPerson or "-"),
        Column("Email", lambda r: r.email or "-"),
        Column("Status", lambda r: r.status, badge=True),
    ],
    search_placeholder="Search customers...",
    has_detail=True,
)

BRANDS = Resource(
    slug="brands",
    title="Brands",
    entity="Brand",
    subtitle="Manage product brands",
    record_cls=Brand,
    schema=BrandForm,
    list_doc=queries.GET_BRANDS, list_root="brands",
    get_doc=queries.GET_BRAND, get_root="brand",
    create_doc=mutations.CREATE_BRAND, update_doc=mutations.UPDATE_BRAND, delete_doc=mutations.DELETE_BRAND,
    fields=[FormField("name", "Name"), FormField("details", "Details", "textarea"), _status()],
    columns=[
        Column("Name", lambda r: r.name),
        Column("Details", lambda r: r.details or "-"),
        Column("Status", lambda r: r.status, badge=True),
    ],
    search_placeholder="Search brands...",
)

CATEGORIES = Resource(
    slug="categories",
    title="Categories",
    entity="Category",
    subtitle="Manage product categories",
    record_cls=Category,
    schema=CategoryForm,
    list_doc=queries.GET_CATEGORIES, list_root="categories",
    get_doc=queries.GET_CATEGORY, get_root="category",
    create_doc=mutations.CREATE_CATEGORY, update_doc=mutations.UPDATE_CATEGORY,
    delete_doc=mutations.DELETE_CATEGORY,
    fields=[FormField("name", "Name"), FormField("details", "Details", "textarea"), _status()],
    columns=[
        Column("Name", lambda r: r.name),
        Column("Details", lambda r: r.details or "-"),
        Column("Status", lambda r: r.status, badge=True),
    ],
    search_placeholder="Search categories...",
)

PRODUCTS = Resource(
    slug="products",
    title="Products",
    entity="Product",
    subtitle="Manage the product catalog",
    record_cls=Product,
    schema=ProductForm,
    list_doc=queries.GET_PRODUCTS, list_root="products",
    get_doc=queries.GET_PRODUCT, get_root="product",
    create_doc=mutations.CREATE_PRODUCT, update_doc=mutations.UPDATE_PRODUCT,
    delete_doc=mutations.DELETE_PRODUCT,
    fields=[
        FormField("name", "Name"),
        FormField("model", "Model"),
        FormField("brandId", "Brand", "select", options="brands"),
        FormField("categoryId", "Category", "select", options="categories"),
        FormField("details", "Details", "textarea"),
        _status(),
    ],
    columns=[
        Column("Name", lambda r: r.name),
        Column("Model", lambda r: r.model or "-"),
        Column("Brand", _ref("brand")),
        Column("Category", _ref("category")),
        Column("Status", lambda r: r.status, badge=True),
    ],
    search_placeholder="Search products...",
)

INVOICES = Resource(
    slug="invoices",
    title="Invoices",
    entity="Invoice",
    subtitle="Manage customer invoices",
    record_cls=Invoice,
    schema=InvoiceForm,
    list_doc=queries.GET_INVOICES, list_root="invoices",
    get_doc=queries.GET_INVOICE, get_root="invoice",
    create_doc=mutations.CREATE_INVOICE, update_doc=mutations.UPDATE_INVOICE,
    delete_doc=mutations.DELETE_INVOICE,
    fields=[
        FormField("customerId", "Customer", "select", options="customers"),
        FormField("locationId", "Location", "select", options="cascade"),
        FormField("invoiceNo", "Invoice No", placeholder="INV-001"),
        FormField("invoiceDate", "Invoice Date", "date"),
        FormField("discount", "Discount", "number", step="0.01"),
        _status(),
    ],
    columns=[
        Column("Invoice No", lambda r: r.invoiceNo),
        Column("Customer", _ref("customer")),
        Column("Location", _ref("location", "displayName")),
        Column("Date", lambda r: nice_date(r.invoiceDate)),
        Column("Grand Total", lambda r: money(r.grandTotal)),
        Column("Status", lambda r: r.status, badge=True),
    ],
    defaults=lambda: {"invoiceDate": today(), "discount": "0", "status": "active"},
    search_placeholder="Search invoices...",
    has_detail=True,
    label=lambda r: r.invoiceNo,
)

PROPOSALS = Resource(
    slug="amc-proposals",
    title="AMC Proposals",
    entity="Proposal",
    subtitle="Manage AMC proposals and proposal items",
    record_cls=AmcProposal,
    schema=ProposalForm,
    list_doc=queries.GET_AMC_PROPOSALS, list_root="amcProposals",
    get_doc=queries.GET_AMC_PROPOSAL, get_root="amcProposal",
    create_doc=mutations.CREATE_AMC_PROPOSAL, update_doc=mutations.UPDATE_AMC_PROPOSAL,
    delete_doc=mutations.DELETE_AMC_PROPOSAL,
    fields=[
        FormField("proposalno", "Proposal No", placeholder="AMC-2024-001"),
        FormField("customerId", "Customer", "select", options="customers"),
        FormField("proposaldate", "Proposal Date", "date"),
        FormField("amcstartdate", "AMC Start Date", "date"),
        FormField("amcenddate", "AMC End Date", "date"),
        FormField("contractno", "Contract No"),
        FormField("billingaddress", "Billing Address", "textarea"),
        FormField("additionalcharge", "Additional Charge", "number", step="0.01"),
        FormField("discount", "Discount", "number", step="0.01"),
        FormField("taxrate", "Tax Rate (%)", "number", step="0.01"),
        FormField("proposalstatus", "Status", "select", choices=PROPOSAL_STATUS_OPTIONS),
    ],
    columns=[
        Column("Proposal No", lambda r: r.proposalno),
        Column("Customer", _ref("customer")),
        Column("Proposal Date", lambda r: nice_date(r.proposaldate)),
        Column("AMC Period", lambda r: f"{nice_date(r.amcstartdate)} - {nice_date(r.amcenddate)}"),
        Column("Grand Total", lambda r: money(r.grandtotal)),
        Column("Status", lambda r: r.proposalstatus, badge=True),
    ],
    defaults=lambda: {
        "proposaldate": today(),
        "amcstartdate": today(),
        "amcenddate": a_year_from_today(),
        "additionalcharge": "0",
        "discount": "0",
        "taxrate": "0",
        "proposalstatus": "new",
    },
    status_options=list(PROPOSAL_STATUS_OPTIONS),
    search_placeholder="Search proposals...",
    has_detail=True,
    label=lambda r: r.proposalno,
)

RESOURCES = [CUSTOMERS, BRANDS, CATEGORIES, PRODUCTS, INVOICES, PROPOSALS]

# forms that live on detail pages
LOCATION_FIELDS = [
    FormField("displayName", "Display Name"),
    FormField("location", "Location"),
    FormField("contactPerson", "Contact Person"),
    FormField("email", "Email", "email"),
    FormField("phone1", "Phone 1"),
    FormField("phone2", "Phone 2"),
    FormField("address", "Address", "textarea"),
    FormField("city", "City"),
    FormField("state", "State"),
    FormField("pin", "PIN"),
    FormField("gstin", "GSTIN"),
    FormField("pan", "PAN"),
    _status(),
]

INVOICE_ITEM_FIELDS = [
    FormField("productId", "Product", "select", options="products"),
    FormField("serialNo", "Serial No"),
    FormField("quantity", "Quantity", "number", step="1"),
    FormField("amount", "Amount", "number", step="0.01"),
]

PROPOSAL_ITEM_FIELDS = [
    FormField("locationId", "Location", "select", options="cascade"),
    FormField("invoiceId", "Invoice", "select", options="cascade"),
    FormField("productId", "Product", "select", options="cascade"),
    FormField("serialno", "Serial No"),
    FormField("saccode", "SAC Code"),
    FormField("quantity", "Quantity", "number", step="1"),
    FormField("rate", "Rate", "number", step="0.01"),
    FormField("amount", "Amount", "number", readonly=True),
]

# option sources for plain (non-cascading) selects: document, root, record class, label
OPTION_SOURCES = {
    "customers": (queries.GET_CUSTOMERS, "customers", Customer, lambda r: r.name),
    "brands": (queries.GET_BRANDS, "brands", Brand, lambda r: r.name),
    "categories": (queries.GET_CATEGORIES, "categories", Category, lambda r: r.name),
    "products": (queries.GET_PRODUCTS, "products", Product,
                 lambda r: f"{r.name} - {r.model}" if r.model else r.name),
}
