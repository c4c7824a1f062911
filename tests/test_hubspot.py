import pytest

from geosync.vendors import hubspot


class DummyResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise RuntimeError("http error")

    def json(self):
        return self._payload


class DummySession:
    def __init__(self):
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append((url, json, headers, timeout))
        return self.response


@pytest.fixture(autouse=True)
def patch_session(monkeypatch):
    session = DummySession()
    monkeypatch.setattr(hubspot, "_SESSION", session)
    return session


def test_search_companies_builds_filter(patch_session):
    patch_session.response = DummyResponse(payload={"total": 0, "results": []})

    payload = hubspot.search_companies("Solsiden", "token", operator=hubspot.OPERATOR_CONTAINS_TOKEN, limit=20)

    assert payload["total"] == 0
    url, body, headers, timeout = patch_session.calls[0]
    assert url.endswith("/crm/v3/objects/companies/search")
    assert body["filterGroups"][0]["filters"][0] == {
        "propertyName": "name",
        "operator": "CONTAINS_TOKEN",
        "value": "Solsiden",
    }
    assert body["properties"] == ["name", "address", "city", "zip", "country"]
    assert body["limit"] == 20
    assert headers["Authorization"] == "Bearer token"
    assert timeout == 10


def test_search_companies_rate_limited(patch_session):
    patch_session.response = DummyResponse(status_code=429, payload={"message": "slow down"})

    with pytest.raises(hubspot.HubSpotError):
        hubspot.search_companies("Solsiden", "token")


def test_search_companies_rejects_payload_without_results(patch_session):
    patch_session.response = DummyResponse(payload={"status": "error", "message": "bad filter"})

    with pytest.raises(hubspot.HubSpotError):
        hubspot.search_companies("Solsiden", "token")


def test_directory_maps_results_to_records(patch_session):
    patch_session.response = DummyResponse(
        payload={
            "total": 240,
            "results": [
                {
                    "id": "101",
                    "properties": {
                        "name": " Sameiet Solsiden Borettslag ",
                        "address": "Storgata 5",
                        "city": "Oslo",
                        "zip": "0150",
                        "country": "Norway",
                    },
                },
                {"id": "102", "properties": {"name": "Solsiden Sameie", "address": ""}},
            ],
        }
    )
    directory = hubspot.HubSpotCompanyDirectory("token", timeout=5)

    found = directory.search("Sameiet Solsiden Borettslag", exact=True, limit=5)

    assert found.total == 240
    assert [record.id for record in found.records] == ["101", "102"]
    assert found.records[0].name == "Sameiet Solsiden Borettslag"
    assert found.records[0].postal_code == "0150"
    assert found.records[1].address is None
    _, body, _, timeout = patch_session.calls[0]
    assert body["filterGroups"][0]["filters"][0]["operator"] == "EQ"
    assert timeout == 5


def test_directory_total_defaults_to_page_size(patch_session):
    patch_session.response = DummyResponse(payload={"results": [{"id": "1", "properties": {"name": "A"}}]})

    found = hubspot.HubSpotCompanyDirectory("token").search("a", exact=False, limit=50)

    assert found.total == 1
