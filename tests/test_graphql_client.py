# tests/test_graphql_client.py
import pytest

import queries
from graphql_client import ApiError, AuthError, GraphQLClient, operation_name


def test_operation_name():
    assert operation_name(queries.GET_CUSTOMERS) == "GetCustomers"
    assert operation_name("mutation DeleteBrand($id: Int!) { deleteBrand(id: $id) }") == "DeleteBrand"
    assert operation_name("{ me { id } }") is None


def test_posts_document_with_bearer_token_and_drops_null_variables(api, gql):
    gql.execute(queries.GET_CUSTOMERS, {"page": 1, "limit": 10, "search": None, "status": None})

    call = api.calls[-1]
    assert call["operationName"] == "GetCustomers"
    assert call["variables"] == {"page": 1, "limit": 10}
    assert call["headers"]["Authorization"] == f"Bearer {gql.token}"


def test_fetch_returns_root_field(api, gql):
    api.add("brands", name="Daikin")
    payload = gql.fetch(queries.GET_BRANDS, "brands", {"page": 1, "limit": 10})
    assert payload["data"][0]["name"] == "Daikin"
    assert payload["pagination"]["total"] == 1


def test_first_graphql_error_becomes_api_error(api, gql):
    api.fail("GetBrands", "Database is down")
    with pytest.raises(ApiError) as exc:
        gql.execute(queries.GET_BRANDS)
    assert exc.value.message == "Database is down"
    assert not isinstance(exc.value, AuthError)


def test_unauthenticated_code_becomes_auth_error(api, gql):
    client = GraphQLClient(gql.url, token="not-a-real-token", http=api)
    with pytest.raises(AuthError):
        client.execute(queries.ME)


def test_http_401_becomes_auth_error(api, gql):
    api.fail("Me", "Token expired", status=401)
    with pytest.raises(AuthError) as exc:
        gql.execute(queries.ME)
    assert exc.value.status_code == 401


def test_server_error_without_json(api, gql):
    api.fail("GetBrands", status=502)
    with pytest.raises(ApiError) as exc:
        gql.execute(queries.GET_BRANDS)
    assert exc.value.message == "Request failed with status 502"


def test_transport_failure(api, gql):
    api.fail("GetBrands", transport=True)
    with pytest.raises(ApiError) as exc:
        gql.execute(queries.GET_BRANDS)
    assert exc.value.message == "Unable to reach the API server"
