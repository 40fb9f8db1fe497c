import pytest

from fitsearch.core.models import GeoFilter, SearchQuery
from fitsearch.etl.transform import to_search_document
from fitsearch.search.service import SearchService
from fitsearch.vendors.typesense import TypesenseClient, TypesenseError


class DummyClient:
    def __init__(self, response=None, error=None):
        self.response = response or {"found": 0, "hits": []}
        self.error = error
        self.calls = []

    def search(self, collection, params):
        self.calls.append((collection, params))
        if self.error:
            raise self.error
        return self.response


class HtmlResponse:
    status_code = 200
    text = "<html>gateway</html>"

    def json(self):
        raise ValueError("Expecting value: line 1 column 1 (char 0)")


class HtmlSession:
    """A gateway in front of the index answering 200 with an HTML page."""

    def __init__(self):
        self.headers = {}

    def request(self, method, url, timeout=None, **kwargs):
        return HtmlResponse()


def html_client():
    return TypesenseClient("http://localhost:8108", "key", timeout=2, session=HtmlSession())


class RankingClient:
    """Sorts stored documents by the requested sort_by, with a fixed text-match score."""

    def __init__(self, documents, text_match=1):
        self.documents = documents
        self.text_match = text_match

    def search(self, collection, params):
        keys = [part.split(":") for part in params["sort_by"].split(",")]

        def sort_key(document):
            values = []
            for field, direction in keys:
                value = self.text_match if field == "_text_match" else document[field]
                values.append(-value if direction == "desc" else value)
            return values

        ordered = sorted(self.documents, key=sort_key)
        return {"found": len(ordered), "hits": [{"document": d, "text_match": self.text_match} for d in ordered]}


def service_with(client):
    return SearchService(client=client, collection="fitness_centers")


def test_build_params_extracts_location_from_text():
    params = service_with(DummyClient()).build_params(SearchQuery(query="crossfit gym in new york"))

    assert params["q"] == "crossfit"
    assert "city:=[`New York`]" in params["filter_by"]
    assert params["filter_by"].startswith("status:=[`verified`,`claimed`]")
    assert params["sort_by"] == "_text_match:desc,boost_score:desc"
    assert params["facet_by"] == "gym_type,price_range,attributes,city,country"
    assert params["query_by_weights"] == "5,3,2,4,4,3"


def test_empty_query_skips_parsing():
    params = service_with(DummyClient()).build_params(SearchQuery(query="  "))

    assert params["q"] == "*"
    assert "city:" not in params["filter_by"]


def test_location_only_query_searches_by_city_name():
    params = service_with(DummyClient()).build_params(SearchQuery(query="gyms in austin"))

    assert params["q"] == "Austin"
    assert "city:=[`Austin`]" in params["filter_by"]


def test_explicit_cities_are_merged_with_cities_from_text():
    params = service_with(DummyClient()).build_params(SearchQuery(query="sauna miami", cities=["nyc"]))

    assert params["q"] == "sauna"
    assert "city:=[`New York`,`Miami`]" in params["filter_by"]


def test_city_named_in_text_and_filter_appears_once():
    params = service_with(DummyClient()).build_params(SearchQuery(query="crossfit in austin", cities=["Austin, TX"]))

    assert params["q"] == "crossfit"
    assert "city:=[`Austin`]" in params["filter_by"]


def test_search_maps_hits_facets_and_pagination():
    response = {
        "found": 45,
        "search_time_ms": 7,
        "hits": [{"document": {"id": "1", "name": "Iron Temple"}, "geo_distance_meters": {"location": 1609.34}}],
        "facet_counts": [{"field_name": "city", "counts": [{"value": "Austin", "count": 45}]}],
    }
    client = DummyClient(response)

    result = service_with(client).search(SearchQuery(query="iron", page=2, per_page=20))

    assert result.available is True
    assert result.total == 45
    assert result.total_pages == 3
    assert result.page == 2
    assert result.processing_time_ms == 7
    assert result.results == [{"id": "1", "name": "Iron Temple"}]
    assert result.facets["cities"][0].count == 45
    assert result.facets["gym_types"] == []
    assert client.calls[0][0] == "fitness_centers"
    assert client.calls[0][1]["page"] == 2


def test_distance_only_reported_with_geo_filter():
    response = {"found": 1, "hits": [{"document": {"id": "1"}, "geo_distance_meters": {"location": 3218.68}}]}
    query = SearchQuery(geo=GeoFilter(30.0, -97.0, 10), sort_by="distance")

    result = service_with(DummyClient(response)).search(query)

    assert result.results[0]["distance"] == pytest.approx(2.0)


def test_search_unavailable_degrades_to_empty_result():
    client = DummyClient(error=TypesenseError("connection refused"))

    result = service_with(client).search(SearchQuery(query="sauna", page=3))

    assert result.available is False
    assert result.error == "search unavailable"
    assert result.results == []
    assert result.total == 0
    assert result.page == 3
    assert set(result.facets) == {"gym_types", "price_ranges", "attributes", "cities", "countries"}


def test_premium_outranks_free_only_on_equal_relevance(listing_factory):
    free = to_search_document(listing_factory("free-gym", name="A Gym", subscription_tier="free"), [])
    premium = to_search_document(listing_factory("premium-gym", name="B Gym", subscription_tier="premium"), [])
    assert premium["boost_score"] > free["boost_score"]

    result = service_with(RankingClient([free, premium])).search(SearchQuery(query="gym"))

    assert [item["id"] for item in result.results] == ["premium-gym", "free-gym"]


def test_autocomplete_short_query_does_not_call_index():
    client = DummyClient()

    assert service_with(client).autocomplete("a") == []
    assert client.calls == []


def test_autocomplete_maps_suggestions():
    response = {"hits": [{"document": {"id": "1", "name": "Iron Temple", "city": "Austin", "slug": "iron", "status": "verified"}}]}
    client = DummyClient(response)

    suggestions = service_with(client).autocomplete("iro")

    assert suggestions == [{"id": "1", "name": "Iron Temple", "city": "Austin", "slug": "iron"}]
    params = client.calls[0][1]
    assert params["query_by"] == "name,city"
    assert params["prefix"] == "true"
    assert params["per_page"] == 5
    assert params["filter_by"] == "status:=[`verified`,`claimed`]"
    assert "facet_by" not in params


def test_autocomplete_errors_return_empty_list():
    client = DummyClient(error=TypesenseError("timeout"))
    assert service_with(client).autocomplete("iron") == []


def test_non_json_index_response_degrades_to_unavailable():
    result = service_with(html_client()).search(SearchQuery(query="sauna"))

    assert result.available is False
    assert result.error == "search unavailable"
    assert result.results == []


def test_autocomplete_non_json_response_returns_empty_list():
    assert service_with(html_client()).autocomplete("iron") == []
