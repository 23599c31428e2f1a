# tests/test_dispatcher.py
import pytest

import mutations
from dispatcher import DispatchBusy, MutationDispatcher
from graphql_client import ApiError


def test_runs_once_and_invalidates(api, gql):
    seen = []
    dispatcher = MutationDispatcher()
    dispatcher.on_success(seen.append)

    data = dispatcher.run(gql, mutations.CREATE_BRAND, {"input": {"name": "Daikin"}})

    assert data["createBrand"]["name"] == "Daikin"
    assert seen == [data]
    assert not dispatcher.in_flight
    assert api.operations() == ["CreateBrand"]


def test_failure_clears_in_flight_and_skips_invalidation(api, gql):
    seen = []
    dispatcher = MutationDispatcher()
    dispatcher.on_success(seen.append)
    api.fail("CreateBrand", "Name taken")

    with pytest.raises(ApiError):
        dispatcher.run(gql, mutations.CREATE_BRAND, {"input": {"name": "Daikin"}})
    assert not dispatcher.in_flight
    assert seen == []
    # nothing is retried
    assert api.operations() == ["CreateBrand"]


def test_refuses_overlapping_runs(api, gql):
    dispatcher = MutationDispatcher()
    attempts = []

    def reenter(data):
        attempts.append(dispatcher.in_flight)

    dispatcher.in_flight = True
    with pytest.raises(DispatchBusy):
        dispatcher.run(gql, mutations.CREATE_BRAND, {"input": {"name": "Daikin"}})
    assert api.calls == []

    dispatcher.in_flight = False
    dispatcher.on_success(reenter)
    dispatcher.run(gql, mutations.CREATE_BRAND, {"input": {"name": "Daikin"}})
    # callbacks run after the flag is cleared, so a reload may dispatch again
    assert attempts == [False]
