#!/usr/bin/env python3
# forms.py
"""
Create/edit form and delete confirmation controllers shared by every entity.
"""
import logging
from datetime import date
from typing import Any, Callable, Dict, Optional, Type

from pydantic import ValidationError

from dispatcher import DispatchBusy, MutationDispatcher
from graphql_client import ApiError, AuthError
from schemas import FormSchema

logger = logging.getLogger(__name__)


def today() -> str:
    return date.today().isoformat()


def a_year_from_today() -> str:
    d = date.today()
    try:
        return d.replace(year=d.year + 1).isoformat()
    except ValueError:
        # 29 Feb
        return d.replace(year=d.year + 1, day=28).isoformat()


def field_errors(exc: ValidationError) -> Dict[str, str]:
    errors = {}
    for err in exc.errors():
        loc = err.get("loc") or ("__all__",)
        errors.setdefault(str(loc[0]), err.get("msg", "Invalid value"))
    return errors


def as_form_value(name: str, value: Any, dates=()) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return value
    if name in dates:
        return str(value)[:10]
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class EntityForm:
    """
    One create-or-edit form.

    open() always resets the values: defaults when adding, the record's current
    values when editing. submit() validates locally, then dispatches create or
    update. A failed request leaves the form open with the entered values.
    """

    def __init__(
        self,
        schema: Type[FormSchema],
        create: Optional[str],
        update: Optional[str],
        entity: str = "Record",
        defaults: Optional[Callable[[], Dict[str, Any]]] = None,
        parent: Optional[Dict[str, Any]] = None,
    ):
        self.schema = schema
        self.create_doc = create
        self.update_doc = update
        self.entity = entity
        self.defaults = defaults or (lambda: {})
        # extra top-level variables for nested creates, e.g. {"invoiceId": 3}
        self.parent = parent or {}
        self.dispatcher = MutationDispatcher()
        self.record = None
        self.values: Dict[str, Any] = {}
        self.errors: Dict[str, str] = {}
        self.error: Optional[str] = None
        self.message: Optional[str] = None
        self.is_open = False
        self.result: Optional[Dict[str, Any]] = None

    @property
    def editing(self) -> bool:
        return self.record is not None

    @property
    def busy(self) -> bool:
        return self.dispatcher.in_flight

    def _blank_values(self) -> Dict[str, Any]:
        values = {}
        for name, field in self.schema.model_fields.items():
            values[name] = as_form_value(name, field.default)
        return values

    def open(self, record=None) -> "EntityForm":
        self.record = record
        self.errors = {}
        self.error = None
        self.message = None
        self.result = None
        values = self._blank_values()
        if record is None:
            values.update(self.defaults())
        else:
            for name in values:
                if hasattr(record, name):
                    values[name] = as_form_value(name, getattr(record, name), self.schema.DATES)
        self.values = values
        self.is_open = True
        return self

    def on_success(self, callback) -> None:
        self.dispatcher.on_success(callback)

    def validate(self, raw: Optional[Dict[str, Any]] = None) -> Optional[FormSchema]:
        if raw is not None:
            self.values = {**self.values, **{k: v for k, v in raw.items() if k in self.values}}
            for name, value in self.values.items():
                if isinstance(value, bool) and name not in raw:
                    # unchecked boxes are not posted
                    self.values[name] = False
        try:
            form = self.schema.model_validate(self.values)
        except ValidationError as e:
            self.errors = field_errors(e)
            return None
        self.errors = {}
        return form

    def submit(self, client, raw: Optional[Dict[str, Any]] = None,
               check: Optional[Callable[[Dict[str, Any]], Dict[str, str]]] = None) -> bool:
        """`check` may veto a schema-valid form, e.g. a selection no longer in scope."""
        self.error = None
        form = self.validate(raw)
        if form is None:
            return False
        if check is not None:
            self.errors = check(self.values) or {}
            if self.errors:
                return False

        payload = form.to_input(create=not self.editing)
        try:
            if self.editing:
                self.result = self.dispatcher.run(client, self.update_doc, {"id": self.record.id, "input": payload})
                self.message = f"{self.entity} updated successfully"
            else:
                self.result = self.dispatcher.run(client, self.create_doc, {**self.parent, "input": payload})
                self.message = f"{self.entity} created successfully"
        except AuthError:
            raise
        except (ApiError, DispatchBusy) as e:
            self.error = str(e) or "An error occurred"
            logger.warning("%s save failed: %s", self.entity, self.error)
            return False

        self.is_open = False
        return True


class DeleteConfirmation:
    """Two-step delete: request() names the record, confirm() deletes it."""

    def __init__(self, document: str, entity: str = "Record", label: Callable[[Any], str] = None):
        self.document = document
        self.entity = entity
        self.label = label or (lambda r: getattr(r, "name", None) or f"#{r.id}")
        self.dispatcher = MutationDispatcher()
        self.pending = None
        self.error: Optional[str] = None
        self.message: Optional[str] = None

    def request(self, record) -> str:
        self.pending = record
        self.error = None
        return self.prompt

    @property
    def prompt(self) -> str:
        if self.pending is None:
            return ""
        return (
            f'Are you sure you want to delete {self.entity.lower()} "{self.label(self.pending)}"? '
            "This action cannot be undone."
        )

    def cancel(self) -> None:
        self.pending = None

    def on_success(self, callback) -> None:
        self.dispatcher.on_success(callback)

    def confirm(self, client) -> bool:
        if self.pending is None:
            return False
        try:
            self.dispatcher.run(client, self.document, {"id": self.pending.id})
        except AuthError:
            raise
        except (ApiError, DispatchBusy) as e:
            self.error = str(e) or "An error occurred"
            return False
        self.message = f"{self.entity} deleted successfully"
        self.pending = None
        return True
