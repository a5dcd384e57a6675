import logging
from threading import RLock
from typing import List, Optional

from book import Book

logger = logging.getLogger(__name__)


SEED_BOOKS = (
    Book(id="1", title="In Search of Lost Time", author="Marcel Proust", quantity=2),
    Book(id="2", title="The Great Gatsby", author="F. Scott Fitzgerald", quantity=5),
    Book(id="3", title="War and Peace", author="Leo Tolstoy", quantity=6),
)


class LibraryError(Exception):
    """Base class for failures of a library operation."""


class MissingParameterError(LibraryError):
    pass


class BookNotFoundError(LibraryError):
    pass


class BookUnavailableError(LibraryError):
    pass


class ExternalServiceError(LibraryError):
    """Raised by the HTTP client when the service cannot be reached or answers unexpectedly."""


class Library:
    """Manages the in-memory collection of books.

    Books are kept in insertion order. Ids are not unique; every id-based
    operation acts on the first book carrying that id.
    """

    def __init__(self, books: Optional[List[Book]] = None) -> None:
        seed = SEED_BOOKS if books is None else books
        # Copies, so that lending from one library never touches the seed
        self.books: List[Book] = [book.copy() for book in seed]
        self._lock = RLock()

    # ------------------------- Core operations ------------------------- #
    def list_books(self) -> List[Book]:
        with self._lock:
            return list(self.books)

    def find_book(self, book_id: Optional[str]) -> Book:
        """Return the first stored book whose id matches exactly."""
        with self._lock:
            return self.books[self._index_of(book_id)]

    def add_book(self, book: Book) -> Book:
        """Append a book as given. Duplicate ids and empty fields are accepted."""
        with self._lock:
            self.books.append(book)
        logger.info(f"Added book {book.id!r} ({book.title!r}), {len(self.books)} books in library")
        return book

    def checkout_book(self, book_id: Optional[str]) -> Book:
        """Lend one copy of a book out, decreasing its quantity by one."""
        with self._lock:
            index = self._index_of(book_id)
            book = self.books[index]
            if book.quantity <= 0:
                logger.info(f"Checkout refused for book {book_id!r}: quantity is {book.quantity}")
                raise BookUnavailableError(f"Book {book_id} is not available.")
            self.books[index].quantity -= 1
        logger.info(f"Checked out book {book_id!r}, {book.quantity} left")
        return book

    def return_book(self, book_id: Optional[str]) -> Book:
        """Take one copy of a book back, increasing its quantity by one."""
        with self._lock:
            index = self._index_of(book_id)
            self.books[index].quantity += 1
            book = self.books[index]
        logger.info(f"Returned book {book_id!r}, {book.quantity} available")
        return book

    # ------------------------- Utilities ------------------------- #
    def _index_of(self, book_id: Optional[str]) -> int:
        """Position of the first book with this id. Caller must hold the lock."""
        if book_id is None:
            raise MissingParameterError("Missing id parameter.")
        for index, book in enumerate(self.books):
            if book.id == book_id:
                return index
        logger.debug(f"No book with id {book_id!r}")
        raise BookNotFoundError(f"Book {book_id} not found.")
