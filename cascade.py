#!/usr/bin/env python3
# cascade.py
"""
Dependent-field cascade for the item forms.

A form declares:
- collections: option sets fetched from the API, keyed by the values of the
  fields they depend on (customer -> locations, invoice -> its line items);
- clears: which selections become invalid when a selector changes;
- derived fields: pure functions of other fields (amount = quantity x rate);
- auto-fill fields: copied from the picked record (serial number) each time
  the trigger changes; edits made after the pick are kept.

Every fetch is issued as a Ticket carrying the key it was issued for. Only the
most recent ticket of a collection may be applied; a late answer for a
superseded selector value is dropped, so options from the wrong scope are
never shown.
"""
import itertools
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

import queries
from graphql_client import ApiError, AuthError
from models import CustomerLocation, Invoice, InvoiceItem, parse_page
from schemas import parse_decimal

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def line_amount(quantity: Any, rate: Any) -> str:
    """quantity x rate rounded half-up to two places; unparsable inputs count as 0."""
    q = parse_decimal(quantity) or Decimal(0)
    r = parse_decimal(rate) or Decimal(0)
    return str((q * r).quantize(CENT, rounding=ROUND_HALF_UP))


class Ticket:
    __slots__ = ("name", "key", "seq")

    def __init__(self, name: str, key: Tuple, seq: int):
        self.name = name
        self.key = key
        self.seq = seq

    def __repr__(self):
        return f"Ticket({self.name!r}, key={self.key!r}, seq={self.seq})"


class Collection:
    def __init__(
        self,
        name: str,
        depends: Sequence[str],
        fetch: Callable[..., List[Any]],
        value: Callable[[Any], str] = lambda r: str(r.id),
        label: Callable[[Any], str] = lambda r: getattr(r, "name", str(r.id)),
        where: Optional[Callable[[Any, Dict[str, str]], bool]] = None,
    ):
        self.name = name
        self.depends = tuple(depends)
        self.fetch = fetch
        self.value = value
        self.label = label
        self.where = where


class CollectionState:
    def __init__(self):
        self.key: Optional[Tuple] = None
        self.records: List[Any] = []
        self.loading = False
        self.error: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.key is not None and not self.loading and self.error is None


class Derived:
    def __init__(self, name: str, inputs: Sequence[str], compute: Callable[..., str]):
        self.name = name
        self.inputs = tuple(inputs)
        self.compute = compute


class AutoFill:
    """Copy `pick(record)` into `name` when `trigger` selects a record of `source`."""

    def __init__(self, name: str, trigger: str, source: str, pick: Callable[[Any], Optional[str]]):
        self.name = name
        self.trigger = trigger
        self.source = source
        self.pick = pick


class Cascade:
    def __init__(
        self,
        fields: Iterable[str],
        collections: Sequence[Collection] = (),
        bindings: Optional[Dict[str, str]] = None,
        clears: Optional[Dict[str, Sequence[str]]] = None,
        derived: Sequence[Derived] = (),
        autofills: Sequence[AutoFill] = (),
    ):
        self.values: Dict[str, str] = {name: "" for name in fields}
        self.collections = {c.name: c for c in collections}
        self.states = {c.name: CollectionState() for c in collections}
        # field -> collection its options come from
        self.bindings = dict(bindings or {})
        self.clears = {k: tuple(v) for k, v in (clears or {}).items()}
        self.derived = list(derived)
        self.autofills = list(autofills)
        self._pending: Dict[str, Ticket] = {}
        self._seq = itertools.count(1)

    # -- state changes ---------------------------------------------------

    def populate(self, values: Dict[str, Any]) -> List[Ticket]:
        """Load a whole form (defaults or an existing record) without clearing anything."""
        for name, value in values.items():
            if name in self.values:
                self.values[name] = "" if value is None else str(value)
        self._derive(None)
        return [t for t in (self._request(c) for c in self.collections.values()) if t]

    def set(self, name: str, value: Any) -> List[Ticket]:
        if name not in self.values:
            raise KeyError(name)
        value = "" if value is None else str(value)
        if any(d.name == name for d in self.derived):
            # derived fields only follow their inputs
            self._derive(None)
            return []
        if self.values[name] == value:
            return []
        self.values[name] = value

        changed = [name]
        for downstream in self.clears.get(name, ()):
            self.values[downstream] = ""
            changed.append(downstream)

        self._derive(changed)
        self._autofill(name)
        return self._refresh(changed)

    def resolve(self, ticket: Ticket, records: Optional[List[Any]] = None, error: Optional[str] = None) -> bool:
        """Apply a fetch result. Returns False when the ticket was superseded."""
        if self._pending.get(ticket.name) is not ticket:
            logger.debug("discarding stale %r", ticket)
            return False
        del self._pending[ticket.name]
        state = self.states[ticket.name]
        state.loading = False
        state.error = error
        state.records = [] if error else list(records or [])
        return True

    def run(self, client, tickets: Optional[Iterable[Ticket]] = None) -> None:
        """Fetch outstanding tickets synchronously, in issue order."""
        pending = list(tickets) if tickets is not None else sorted(self._pending.values(), key=lambda t: t.seq)
        for ticket in pending:
            collection = self.collections[ticket.name]
            upstream = dict(zip(collection.depends, ticket.key))
            try:
                records = collection.fetch(client, **upstream)
            except AuthError:
                raise
            except ApiError as e:
                self.resolve(ticket, error=e.message)
            except ValidationError as e:
                logger.warning("malformed %s options: %s", ticket.name, e)
                self.resolve(ticket, error="Unexpected response from the server")
            else:
                self.resolve(ticket, records)

    # -- reads -------------------------------------------------------------

    def state(self, collection: str) -> CollectionState:
        return self.states[collection]

    def records(self, field: str) -> List[Any]:
        name = self.bindings[field]
        state = self.states[name]
        if not state.ready:
            return []
        where = self.collections[name].where
        if where is None:
            return list(state.records)
        return [r for r in state.records if where(r, self.values)]

    def options(self, field: str) -> List[Tuple[str, str]]:
        collection = self.collections[self.bindings[field]]
        seen, opts = set(), []
        for r in self.records(field):
            value = collection.value(r)
            if value not in seen:
                seen.add(value)
                opts.append((value, collection.label(r)))
        return opts

    def disabled(self, field: str) -> bool:
        name = self.bindings.get(field)
        if name is None:
            return False
        state = self.states[name]
        return state.key is None or state.loading

    def membership_errors(self) -> Dict[str, str]:
        """Selections that are not among the options currently in scope."""
        errors = {}
        for field, name in self.bindings.items():
            value = self.values.get(field)
            if not value or not self.states[name].ready:
                continue
            if value not in {v for v, _ in self.options(field)}:
                errors[field] = "Select a valid option"
        return errors

    def snapshot(self) -> Dict[str, Any]:
        fields = {}
        for field, name in self.bindings.items():
            state = self.states[name]
            fields[field] = {
                "options": [{"value": v, "label": l} for v, l in self.options(field)],
                "loading": state.loading,
                "disabled": self.disabled(field),
                "error": state.error,
            }
        return {"values": dict(self.values), "fields": fields}

    # -- internals ---------------------------------------------------------

    def _derive(self, changed: Optional[List[str]]) -> None:
        for d in self.derived:
            if changed is None or any(i in changed for i in d.inputs):
                self.values[d.name] = d.compute(*(self.values.get(i, "") for i in d.inputs))

    def _autofill(self, trigger: str) -> None:
        value = self.values.get(trigger)
        for fill in self.autofills:
            if fill.trigger != trigger or not value or self.values.get(fill.name):
                continue
            collection = self.collections[fill.source]
            state = self.states[fill.source]
            if not state.ready:
                continue
            match = next((r for r in state.records if collection.value(r) == value), None)
            picked = fill.pick(match) if match is not None else None
            if picked:
                self.values[fill.name] = picked

    def _refresh(self, changed: List[str]) -> List[Ticket]:
        tickets = []
        for collection in self.collections.values():
            if set(collection.depends) & set(changed):
                ticket = self._request(collection)
                if ticket:
                    tickets.append(ticket)
        return tickets

    def _request(self, collection: Collection) -> Optional[Ticket]:
        state = self.states[collection.name]
        key = tuple(self.values.get(d, "") for d in collection.depends)
        # a new request always supersedes the one in flight
        self._pending.pop(collection.name, None)
        state.records = []
        state.error = None
        if any(part == "" for part in key):
            state.key = None
            state.loading = False
            return None
        ticket = Ticket(collection.name, key, next(self._seq))
        state.key = key
        state.loading = True
        self._pending[collection.name] = ticket
        return ticket


# -- concrete forms ----------------------------------------------------------

def _fetch_locations(limit: int):
    def fetch(client, customerId):
        payload = client.fetch(queries.GET_CUSTOMER_LOCATIONS, "customerLocations",
                               {"page": 1, "limit": limit, "customerId": int(customerId)})
        return parse_page(payload, CustomerLocation).rows
    return fetch


def _fetch_invoices(limit: int):
    def fetch(client, customerId):
        payload = client.fetch(queries.GET_INVOICES, "invoices",
                               {"page": 1, "limit": limit, "customerId": int(customerId)})
        return parse_page(payload, Invoice).rows
    return fetch


def _fetch_invoice_items(client, invoiceId):
    invoice = client.fetch(queries.GET_INVOICE, "invoice", {"id": int(invoiceId)})
    if not invoice:
        raise ApiError("Invoice not found")
    return [InvoiceItem.model_validate(i) for i in invoice.get("items") or []]


def _item_label(item: InvoiceItem) -> str:
    name = item.product.name if item.product and item.product.name else f"Product #{item.productId}"
    if item.product and item.product.model:
        name = f"{name} - {item.product.model}"
    return f"{name} ({item.serialNo})" if item.serialNo else name


def _in_location(invoice: Invoice, values: Dict[str, str]) -> bool:
    location = values.get("locationId")
    return not location or str(invoice.locationId) == location


PROPOSAL_ITEM_FIELDS = (
    "customerId", "locationId", "invoiceId", "productId", "serialno", "saccode", "quantity", "rate", "amount",
)


def proposal_item_cascade(limit: int = 1000) -> Cascade:
    return Cascade(
        PROPOSAL_ITEM_FIELDS,
        collections=[
            Collection("locations", ["customerId"], _fetch_locations(limit), label=lambda r: r.displayName),
            Collection("invoices", ["customerId"], _fetch_invoices(limit),
                       label=lambda r: r.invoiceNo, where=_in_location),
            Collection("invoiceItems", ["invoiceId"], _fetch_invoice_items,
                       value=lambda r: str(r.productId), label=_item_label),
        ],
        bindings={"locationId": "locations", "invoiceId": "invoices", "productId": "invoiceItems"},
        clears={
            "customerId": ["locationId", "invoiceId", "productId", "serialno"],
            "locationId": ["invoiceId", "productId", "serialno"],
            "invoiceId": ["productId", "serialno"],
            # the serial belongs to the picked invoice line
            "productId": ["serialno"],
        },
        derived=[Derived("amount", ["quantity", "rate"], line_amount)],
        autofills=[AutoFill("serialno", "productId", "invoiceItems", lambda r: r.serialNo)],
    )


INVOICE_FIELDS = ("customerId", "locationId", "invoiceNo", "invoiceDate", "discount", "status")


def invoice_cascade(limit: int = 1000) -> Cascade:
    return Cascade(
        INVOICE_FIELDS,
        collections=[
            Collection("locations", ["customerId"], _fetch_locations(limit), label=lambda r: r.displayName),
        ],
        bindings={"locationId": "locations"},
        clears={"customerId": ["locationId"]},
    )
