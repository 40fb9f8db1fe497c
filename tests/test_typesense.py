import json

import pytest
import requests

from fitsearch.core import config
from fitsearch.vendors import typesense


class DummyResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload or {})

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class DummySession:
    def __init__(self, response=None, error=None):
        self.headers = {}
        self.calls = []
        self.response = response
        self.error = error

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append((method, url, timeout, kwargs))
        if self.error:
            raise self.error
        return self.response


def make_client(response=None, error=None, timeout=2):
    session = DummySession(response, error)
    return typesense.TypesenseClient("http://localhost:8108/", "key", timeout=timeout, session=session), session


def test_client_sets_api_key_header():
    client, session = make_client(DummyResponse(payload={"name": "fitness_centers"}))
    client.retrieve_collection("fitness_centers")

    method, url, timeout, _ = session.calls[0]
    assert session.headers["X-TYPESENSE-API-KEY"] == "key"
    assert (method, url, timeout) == ("GET", "http://localhost:8108/collections/fitness_centers", 2)


def test_search_passes_params():
    client, session = make_client(DummyResponse(payload={"found": 0, "hits": []}))
    payload = client.search("fitness_centers", {"q": "*"})

    assert payload["found"] == 0
    method, url, _, kwargs = session.calls[0]
    assert url.endswith("/collections/fitness_centers/documents/search")
    assert kwargs["params"] == {"q": "*"}


def test_upsert_document_uses_upsert_action():
    client, session = make_client(DummyResponse(payload={"id": "1"}))
    client.upsert_document("fitness_centers", {"id": "1"})

    method, url, _, kwargs = session.calls[0]
    assert method == "POST"
    assert kwargs["params"] == {"action": "upsert"}
    assert kwargs["json"] == {"id": "1"}


def test_import_documents_sends_jsonl_and_parses_results():
    body = '{"success": true}\n{"success": false, "error": "bad field"}\n'
    client, session = make_client(DummyResponse(text=body))

    results = client.import_documents("fitness_centers", [{"id": "1"}, {"id": "2"}])

    assert results == [{"success": True}, {"success": False, "error": "bad field"}]
    _, url, _, kwargs = session.calls[0]
    assert url.endswith("/documents/import")
    assert kwargs["data"].decode("utf-8").splitlines() == ['{"id": "1"}', '{"id": "2"}']


def test_delete_document_tolerates_not_found():
    client, _ = make_client(DummyResponse(status_code=404, payload={"message": "Not Found"}))
    assert client.delete_document("fitness_centers", "gone") is False

    client, _ = make_client(DummyResponse(payload={"id": "1"}))
    assert client.delete_document("fitness_centers", "1") is True


def test_error_status_raises_with_message():
    client, _ = make_client(DummyResponse(status_code=400, payload={"message": "Bad filter"}))

    with pytest.raises(typesense.TypesenseError) as excinfo:
        client.search("fitness_centers", {"q": "*"})

    assert excinfo.value.status_code == 400
    assert "Bad filter" in str(excinfo.value)


def test_not_found_is_specific_error():
    client, _ = make_client(DummyResponse(status_code=404, payload={"message": "Not Found"}))
    with pytest.raises(typesense.TypesenseNotFound):
        client.retrieve_collection("missing")


def test_transport_errors_are_wrapped():
    client, _ = make_client(error=requests.ConnectTimeout("timed out"))
    with pytest.raises(typesense.TypesenseError):
        client.search("fitness_centers", {"q": "*"})


def test_non_json_body_is_wrapped():
    client, _ = make_client(DummyResponse(status_code=200, text="<html>gateway</html>"))

    with pytest.raises(typesense.TypesenseError) as excinfo:
        client.search("fitness_centers", {"q": "*"})

    assert excinfo.value.status_code == 200


def test_malformed_import_lines_are_wrapped():
    client, _ = make_client(DummyResponse(text="<html>gateway</html>"))
    with pytest.raises(typesense.TypesenseError):
        client.import_documents("fitness_centers", [{"id": "1"}])


def test_factories_use_separate_timeouts_and_keys():
    settings = config.Settings(
        database_url="",
        typesense_host="localhost",
        typesense_port=8108,
        typesense_protocol="http",
        typesense_admin_api_key="admin",
        typesense_search_api_key="search",
    )

    search_client = typesense.create_search_client(settings)
    admin_client = typesense.create_admin_client(settings)

    assert search_client.timeout == 2.0
    assert admin_client.timeout == 5.0
    assert search_client.session.headers["X-TYPESENSE-API-KEY"] == "search"
    assert admin_client.session.headers["X-TYPESENSE-API-KEY"] == "admin"
    assert admin_client.base_url == "http://localhost:8108"


def test_admin_client_requires_key():
    settings = config.Settings(database_url="", typesense_host="localhost")
    with pytest.raises(config.ConfigError):
        typesense.create_admin_client(settings)
