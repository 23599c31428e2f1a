# tests/conftest.py
import pytest

from app import create_app
from fake_api import FakeApi
from graphql_client import GraphQLClient

API_URL = "http://api.test/graphql"


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def gql(api):
    """A client that is already signed in against the fake service."""
    return GraphQLClient(API_URL, token=api.issue_token(), http=api)


@pytest.fixture
def app(api):
    return create_app({"TESTING": True, "SECRET_KEY": "test-secret", "API_URL": API_URL}, http=api)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def logged_in(client):
    resp = client.post("/login", data={"email": "admin@example.com", "password": "secret"})
    assert resp.status_code == 302
    return client


@pytest.fixture
def catalog(api):
    """Acme with two locations, one invoice per location, and two products."""
    acme = api.add("customers", name="Acme Corp", email="ops@acme.test")
    hq = api.add("locations", customerId=acme["id"], displayName="HQ")
    plant = api.add("locations", customerId=acme["id"], displayName="Plant")
    brand = api.add("brands", name="Daikin")
    category = api.add("categories", name="Air Conditioner")
    split = api.add("products", name="Split AC", model="FTKF50", brandId=brand["id"], categoryId=category["id"])
    chiller = api.add("products", name="Chiller", model="EWAD", brandId=brand["id"], categoryId=category["id"])
    inv_hq = api.add("invoices", customerId=acme["id"], locationId=hq["id"], invoiceNo="INV-1",
                     invoiceDate="2024-01-01")
    inv_plant = api.add("invoices", customerId=acme["id"], locationId=plant["id"], invoiceNo="INV-2",
                        invoiceDate="2024-02-01")
    api.add("invoiceItems", invoiceId=inv_hq["id"], productId=split["id"], serialNo="SN-42", quantity=1,
            amount=45000.0)
    api.add("invoiceItems", invoiceId=inv_plant["id"], productId=chiller["id"], serialNo="SN-77", quantity=1,
            amount=900000.0)
    return {
        "customer": acme, "hq": hq, "plant": plant, "brand": brand, "category": category,
        "split": split, "chiller": chiller, "inv_hq": inv_hq, "inv_plant": inv_plant,
    }
