import pytest
import requests

from geosync.core.models import AddressCandidate, Facility
from geosync.geocoding import router


class FakeSearch:
    def __init__(self, *responses, error=None):
        self.responses = list(responses)
        self.error = error
        self.queries = []

    def search(self, query, limit=5):
        self.queries.append((query, limit))
        if self.error is not None:
            raise self.error
        return self.responses.pop(0) if self.responses else []


def oslo(postal_code="0150"):
    return AddressCandidate(latitude=59.9127, longitude=10.7461, label="Kongens gate 1, OSLO", postal_code=postal_code)


@pytest.fixture
def norwegian_facility():
    return Facility(id="n1", name="Solsiden", country="Norway", address="Kongens gate 1", city="Oslo", postal_code="0150")


@pytest.fixture
def swedish_facility():
    return Facility(
        id="s1",
        name="Brf Ekbacken",
        country="Sweden",
        address="Drottninggatan 1",
        city="Stockholm",
        postal_code="111 51",
    )


def make_router(registry_search=None, commercial_search=None):
    return router.GeocodingRouter(
        router.NationalRegistryGeocoder(registry_search or FakeSearch()),
        router.CommercialGeocoder(commercial_search),
        registry_country="Norway",
    )


def test_registry_postal_match_gives_high_confidence(norwegian_facility):
    search = FakeSearch([oslo("0150")])

    result = make_router(registry_search=search).geocode(norwegian_facility)

    assert result.provider == "kartverket"
    assert result.confidence == 0.95
    assert (result.latitude, result.longitude) == (59.9127, 10.7461)
    assert search.queries == [("Kongens gate 1 0150", 5)]


def test_registry_postal_mismatch_lowers_confidence(norwegian_facility):
    search = FakeSearch([oslo("0151"), oslo("0150")])

    result = make_router(registry_search=search).geocode(norwegian_facility)

    assert result.confidence == 0.75
    assert len(search.queries) == 1


def test_registry_falls_back_to_city_query(norwegian_facility):
    search = FakeSearch([], [oslo("0150")])

    result = make_router(registry_search=search).geocode(norwegian_facility)

    assert result.confidence == 0.60
    assert search.queries == [("Kongens gate 1 0150", 5), ("Kongens gate 1 Oslo", 5)]


def test_registry_gives_up_after_one_fallback(norwegian_facility):
    search = FakeSearch([], [])

    assert make_router(registry_search=search).geocode(norwegian_facility) is None
    assert len(search.queries) == 2


def test_registry_query_omits_missing_postal_code():
    facility = Facility(id="n2", name="Tårnet", country="Norway", address="Storgata 5", city="Oslo")
    search = FakeSearch([oslo("0150")])

    result = make_router(registry_search=search).geocode(facility)

    assert search.queries[0][0] == "Storgata 5"
    assert result.confidence == 0.75


def test_commercial_uses_relevance_score(swedish_facility):
    search = FakeSearch([AddressCandidate(latitude=59.33, longitude=18.06, score=0.92)])

    result = make_router(commercial_search=search).geocode(swedish_facility)

    assert result.provider == "here"
    assert result.confidence == 0.92
    assert search.queries == [("Drottninggatan 1, 111 51, Stockholm, Sweden", 5)]


def test_commercial_defaults_confidence_without_score(swedish_facility):
    search = FakeSearch([AddressCandidate(latitude=59.33, longitude=18.06), AddressCandidate(latitude=1.0, longitude=1.0)])

    result = make_router(commercial_search=search).geocode(swedish_facility)

    assert result.confidence == 0.7
    assert result.latitude == 59.33


def test_commercial_zero_score_falls_back_to_default_confidence(swedish_facility):
    search = FakeSearch([AddressCandidate(latitude=59.33, longitude=18.06, score=0.0)])

    result = make_router(commercial_search=search).geocode(swedish_facility)

    assert result.confidence == 0.7


def test_commercial_query_omits_empty_fields():
    facility = Facility(id="d1", name="A/B Havnen", country="Denmark", address="Havnegade 4", city="København")
    search = FakeSearch([])

    assert make_router(commercial_search=search).geocode(facility) is None
    assert search.queries == [("Havnegade 4, København, Denmark", 5)]


def test_commercial_without_credential_makes_no_call(swedish_facility):
    registry_search = FakeSearch([oslo()])
    geocoding_router = make_router(registry_search=registry_search, commercial_search=None)

    assert geocoding_router.geocode(swedish_facility) is None
    assert registry_search.queries == []
    assert geocoding_router.commercial.configured is False


def test_registry_country_never_reaches_commercial(norwegian_facility):
    commercial_search = FakeSearch([AddressCandidate(latitude=1.0, longitude=1.0, score=1.0)])
    registry_search = FakeSearch([], [])

    result = make_router(registry_search=registry_search, commercial_search=commercial_search).geocode(norwegian_facility)

    assert result is None
    assert commercial_search.queries == []


def test_other_countries_never_reach_registry(swedish_facility):
    registry_search = FakeSearch([oslo()])
    commercial_search = FakeSearch([AddressCandidate(latitude=59.33, longitude=18.06, score=0.8)])
    geocoding_router = make_router(registry_search=registry_search, commercial_search=commercial_search)

    assert geocoding_router.provider_for(swedish_facility) == "here"
    assert geocoding_router.geocode(swedish_facility).provider == "here"
    assert registry_search.queries == []


def test_transient_errors_are_counted_and_raised(norwegian_facility, swedish_facility):
    geocoding_router = make_router(
        registry_search=FakeSearch(error=requests.Timeout("slow")),
        commercial_search=FakeSearch(error=requests.ConnectionError("reset")),
    )

    with pytest.raises(requests.Timeout):
        geocoding_router.geocode(norwegian_facility)
    with pytest.raises(requests.ConnectionError):
        geocoding_router.geocode(swedish_facility)
    assert geocoding_router.error_count == 2


def test_designated_country_is_configurable(swedish_facility):
    registry_search = FakeSearch([oslo("111 51")])
    geocoding_router = router.GeocodingRouter(
        router.NationalRegistryGeocoder(registry_search),
        router.CommercialGeocoder(None),
        registry_country="Sweden",
    )

    result = geocoding_router.geocode(swedish_facility)

    assert result.provider == "kartverket"
    assert result.confidence == 0.95
