import logging
import time
from typing import List, Optional

import httpx

from book import Book
from config import settings
from library import (
    BookNotFoundError,
    BookUnavailableError,
    ExternalServiceError,
    LibraryError,
    MissingParameterError,
)

logger = logging.getLogger(__name__)

# Messages the service answers 400 with, mapped back to the error they stand for
_BAD_REQUEST_ERRORS = {
    "Missing id query parameter.": MissingParameterError,
    "Book not available.": BookUnavailableError,
}


class LibraryClient:
    """HTTP client for a running book lending service.

    Raises the same errors the in-process library does, so callers can treat
    a remote library and a local one alike.
    """

    def __init__(self, base_url: Optional[str] = None, http: Optional[httpx.Client] = None,
                 retries: Optional[int] = None, backoff: float = 0.5) -> None:
        self.base_url = base_url or settings.base_url
        self.retries = settings.client_retries if retries is None else retries
        self.backoff = backoff
        self._owns_http = http is None
        self._http = http or httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(settings.client_timeout),
        )

    def list_books(self) -> List[Book]:
        resp = self._request("GET", "/books")
        return [Book.from_dict(item) for item in resp.json()]

    def find_book(self, book_id: str) -> Book:
        resp = self._request("GET", f"/books/{book_id}")
        return Book.from_dict(resp.json())

    def add_book(self, book: Book) -> Book:
        resp = self._request("POST", "/books", json=book.to_dict())
        return Book.from_dict(resp.json())

    def checkout_book(self, book_id: Optional[str]) -> Book:
        resp = self._request("PUT", "/checkout", params=self._id_params(book_id))
        return Book.from_dict(resp.json())

    def return_book(self, book_id: Optional[str]) -> Book:
        resp = self._request("PUT", "/return", params=self._id_params(book_id))
        return Book.from_dict(resp.json())

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # ------------------------- Transport ------------------------- #
    @staticmethod
    def _id_params(book_id: Optional[str]) -> dict:
        return {} if book_id is None else {"id": book_id}

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send a request, retrying only when no response arrived at all."""
        attempts = max(1, self.retries)
        for attempt in range(attempts):
            try:
                resp = self._http.request(method, path, **kwargs)
                break
            except httpx.RequestError as exc:
                if attempt < attempts - 1:
                    wait_time = self.backoff * (2 ** attempt)
                    logger.warning(f"{method} {path} failed ({exc}), retrying in {wait_time:.1f}s")
                    time.sleep(wait_time)
                    continue
                raise ExternalServiceError(f"Library service unreachable at {self.base_url}") from exc
        if resp.is_success:
            return resp
        raise self._error_from_response(resp)

    @staticmethod
    def _error_from_response(resp: httpx.Response) -> LibraryError:
        try:
            message = resp.json().get("message", "")
        except (ValueError, AttributeError):
            message = resp.text
        if resp.status_code == 404:
            return BookNotFoundError(message)
        if resp.status_code == 400 and message in _BAD_REQUEST_ERRORS:
            return _BAD_REQUEST_ERRORS[message](message)
        return ExternalServiceError(f"Unexpected response {resp.status_code}: {message}")
