# tests/test_forms.py
import pytest
from pydantic import ValidationError

import mutations
import queries
from forms import DeleteConfirmation, EntityForm, a_year_from_today, as_form_value, field_errors, today
from models import Customer, parse_page
from resources import CUSTOMERS, INVOICES, PROPOSALS
from schemas import CustomerForm, InvoiceForm, SendEmailForm


def customer_form():
    return EntityForm(CustomerForm, mutations.CREATE_CUSTOMER, mutations.UPDATE_CUSTOMER, "Customer",
                      defaults=lambda: {"status": "active"})


def test_open_for_add_after_edit_shows_defaults():
    record = Customer(id=7, name="Acme Corp", email="ops@acme.test", status="inactive")
    form = customer_form().open(record)
    assert form.editing
    assert form.values["name"] == "Acme Corp"
    assert form.values["status"] == "inactive"

    form.open()
    assert not form.editing
    assert form.values["name"] == ""
    assert form.values["email"] == ""
    assert form.values["status"] == "active"


def test_resource_defaults():
    invoice = EntityForm(InvoiceForm, None, None, defaults=INVOICES.defaults).open()
    assert invoice.values["invoiceDate"] == today()
    assert invoice.values["discount"] == "0"

    proposal = EntityForm(PROPOSALS.schema, None, None, defaults=PROPOSALS.defaults).open()
    assert proposal.values["amcenddate"] == a_year_from_today()
    assert proposal.values["proposalstatus"] == "new"


def test_record_values_become_editable_strings():
    assert as_form_value("invoiceDate", "2024-01-05T00:00:00.000Z", {"invoiceDate"}) == "2024-01-05"
    assert as_form_value("amount", 500.0) == "500"
    assert as_form_value("amount", 12.5) == "12.5"
    assert as_form_value("email", None) == ""


def test_validation_errors_block_the_request(api, gql):
    form = customer_form().open()
    assert not form.submit(gql, {"name": "  ", "email": "not-an-email"})
    assert form.errors == {"name": "Name is required", "email": "Invalid email"}
    assert api.calls == []


def test_create_drops_blank_optionals(api, gql):
    form = customer_form().open()
    assert form.submit(gql, {"name": "Acme Corp", "email": "", "status": "active"})

    call = api.calls[-1]
    assert call["operationName"] == "CreateCustomer"
    assert call["variables"]["input"] == {"name": "Acme Corp", "status": "active"}
    assert form.message == "Customer created successfully"
    assert not form.is_open


def test_update_is_keyed_by_record_id(api, gql):
    acme = api.add("customers", name="Acme")
    record = Customer.model_validate(acme)
    form = customer_form().open(record)
    assert form.submit(gql, {"name": "Acme Corp", "contactPerson": "Ravi"})

    call = api.calls[-1]
    assert call["operationName"] == "UpdateCustomer"
    assert call["variables"]["id"] == acme["id"]
    assert api.tables["customers"][acme["id"]]["name"] == "Acme Corp"
    assert form.message == "Customer updated successfully"


def test_failed_mutation_keeps_the_form_open_and_populated(api, gql):
    api.fail("CreateCustomer", "Customer with this name already exists")
    form = customer_form().open()
    assert not form.submit(gql, {"name": "Acme Corp", "details": "Key account"})

    assert form.is_open
    assert form.error == "Customer with this name already exists"
    assert form.values["name"] == "Acme Corp"
    assert form.values["details"] == "Key account"
    assert not form.busy


def test_second_submit_while_busy_is_refused(api, gql):
    form = customer_form().open()
    form.dispatcher.in_flight = True
    assert not form.submit(gql, {"name": "Acme Corp"})
    assert form.error == "A request is already in progress"
    assert api.calls == []


def test_success_triggers_reload(api, gql):
    reloaded = []
    form = customer_form().open()
    form.on_success(lambda data: reloaded.append(
        parse_page(gql.fetch(queries.GET_CUSTOMERS, "customers"), Customer).pagination.total))
    form.submit(gql, {"name": "Acme Corp"})
    assert reloaded == [1]


def test_check_can_veto_a_valid_form(api, gql):
    form = customer_form().open()
    assert not form.submit(gql, {"name": "Acme Corp"}, check=lambda values: {"name": "Pick another name"})
    assert form.errors == {"name": "Pick another name"}
    assert api.calls == []


def test_invoice_create_sends_zero_totals(api, gql, catalog):
    form = EntityForm(InvoiceForm, mutations.CREATE_INVOICE, mutations.UPDATE_INVOICE, "Invoice",
                      defaults=INVOICES.defaults).open()
    assert form.submit(gql, {"customerId": str(catalog["customer"]["id"]), "invoiceNo": "INV-100",
                             "invoiceDate": "2024-01-01"})
    payload = api.calls[-1]["variables"]["input"]
    assert payload["customerId"] == catalog["customer"]["id"]
    assert payload["discount"] == 0.0
    assert payload["total"] == payload["subtotal"] == payload["grandTotal"] == 0.0
    assert "locationId" not in payload


def test_delete_confirmation(api, gql):
    acme = Customer.model_validate(api.add("customers", name="Acme Corp"))
    confirm = DeleteConfirmation(CUSTOMERS.delete_doc, "Customer")

    assert confirm.request(acme) == (
        'Are you sure you want to delete customer "Acme Corp"? This action cannot be undone.')
    confirm.cancel()
    assert not confirm.confirm(gql)
    assert api.calls == []

    confirm.request(acme)
    assert confirm.confirm(gql)
    assert confirm.message == "Customer deleted successfully"
    assert api.tables["customers"] == {}


def test_failed_delete_keeps_the_pending_record(api, gql):
    acme = Customer.model_validate(api.add("customers", name="Acme Corp"))
    confirm = DeleteConfirmation(CUSTOMERS.delete_doc, "Customer")
    confirm.request(acme)
    api.fail("DeleteCustomer", "Customer has invoices")
    assert not confirm.confirm(gql)
    assert confirm.error == "Customer has invoices"
    assert confirm.pending is acme


@pytest.mark.parametrize("address", ["ops@acme.test", "amc@intranet.local", "admin@example.com"])
def test_internal_email_domains_are_accepted(address):
    assert SendEmailForm.model_validate({"email": address}).email == address


@pytest.mark.parametrize("address", ["nope", "ops@", "a b@acme.test"])
def test_malformed_email_is_rejected(address):
    with pytest.raises(ValidationError) as excinfo:
        SendEmailForm.model_validate({"email": address})
    assert field_errors(excinfo.value) == {"email": "Invalid email address"}
