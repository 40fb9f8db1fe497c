"""Client utilities for the Typesense search API."""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional

import requests

from fitsearch.core.config import Settings, get_settings, require_admin_api_key

logger = logging.getLogger(__name__)


class TypesenseError(RuntimeError):
    """Raised when Typesense returns a non-successful response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TypesenseNotFound(TypesenseError):
    """Raised for 404 responses."""


class TypesenseClient:
    def __init__(self, base_url: str, api_key: str, timeout: float, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"X-TYPESENSE-API-KEY": api_key})

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error("Typesense %s %s failed: %s", method, path, exc)
            raise TypesenseError(str(exc)) from exc

        if response.status_code == 404:
            raise TypesenseNotFound(_error_message(response), status_code=404)
        if response.status_code >= 400:
            message = _error_message(response)
            logger.error("Typesense %s %s returned %s: %s", method, path, response.status_code, message)
            raise TypesenseError(message, status_code=response.status_code)
        return response

    # Collections

    def retrieve_collection(self, name: str) -> Dict[str, Any]:
        return _json(self._request("GET", f"/collections/{name}"))

    def create_collection(self, schema: Dict[str, Any]) -> Dict[str, Any]:
        return _json(self._request("POST", "/collections", json=schema))

    def delete_collection(self, name: str) -> Dict[str, Any]:
        return _json(self._request("DELETE", f"/collections/{name}"))

    # Documents

    def upsert_document(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        response = self._request(
            "POST",
            f"/collections/{collection}/documents",
            params={"action": "upsert"},
            json=document,
        )
        return _json(response)

    def import_documents(
        self,
        collection: str,
        documents: Iterable[Dict[str, Any]],
        action: str = "upsert",
    ) -> List[Dict[str, Any]]:
        """Bulk import; returns one result per document in input order."""
        body = "\n".join(json.dumps(document) for document in documents)
        response = self._request(
            "POST",
            f"/collections/{collection}/documents/import",
            params={"action": action},
            data=body.encode("utf-8"),
            headers={"Content-Type": "text/plain"},
        )
        try:
            return [json.loads(line) for line in response.text.splitlines() if line.strip()]
        except ValueError as exc:
            raise TypesenseError(f"malformed import response: {exc}") from exc

    def delete_document(self, collection: str, document_id: str) -> bool:
        """Delete a document; returns False when it was already absent."""
        try:
            self._request("DELETE", f"/collections/{collection}/documents/{document_id}")
        except TypesenseNotFound:
            logger.debug("Document %s not found in %s; nothing to delete", document_id, collection)
            return False
        return True

    def search(self, collection: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return _json(self._request("GET", f"/collections/{collection}/documents/search", params=params))


def _json(response: requests.Response) -> Dict[str, Any]:
    try:
        return response.json()
    except ValueError as exc:
        logger.error("Typesense returned a non-JSON body (%s): %s", response.status_code, response.text[:200])
        raise TypesenseError(f"invalid JSON from Typesense: {exc}", status_code=response.status_code) from exc


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:500] or f"HTTP {response.status_code}"
    return payload.get("message") or f"HTTP {response.status_code}"


def create_search_client(settings: Optional[Settings] = None) -> TypesenseClient:
    """Read-path client with a short timeout; search should fail fast rather than hang."""
    settings = settings or get_settings()
    return TypesenseClient(
        settings.typesense_url,
        settings.typesense_search_api_key or "",
        timeout=settings.search_timeout,
    )


def create_admin_client(settings: Optional[Settings] = None) -> TypesenseClient:
    settings = settings or get_settings()
    api_key = require_admin_api_key(settings)
    return TypesenseClient(settings.typesense_url, api_key, timeout=settings.index_timeout)
