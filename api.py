import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple, Type

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, StrictInt, StrictStr, ValidationError, model_validator

from book import Book
from config import configure_logging, settings
from library import (
    BookNotFoundError,
    BookUnavailableError,
    Library,
    LibraryError,
    MissingParameterError,
)

configure_logging()
logger = logging.getLogger(__name__)

library = Library()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.app_name} ready with {len(library.list_books())} books")
    yield


app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)


# --- Models ---
class BookModel(BaseModel):
    # Strict types: a string quantity or a numeric title is a decode failure,
    # while absent fields fall back to zero values.
    id: StrictStr = ""
    title: StrictStr = ""
    author: StrictStr = ""
    quantity: StrictInt = 0

    @model_validator(mode="before")
    @classmethod
    def _fold_keys(cls, data):
        """Decode like a typed JSON binding: keys match any case, nulls keep the zero value."""
        if data is None:
            return {}
        if isinstance(data, dict):
            # Later keys win when two spellings of a field collide
            return {str(key).lower(): value for key, value in data.items() if value is not None}
        return data

    def to_book(self) -> Book:
        return Book(id=self.id, title=self.title, author=self.author, quantity=self.quantity)


class ErrorModel(BaseModel):
    message: str


class HealthModel(BaseModel):
    status: str
    timestamp: str
    total_books: int


# --- Error translation ---
INVALID_PAYLOAD_MESSAGE = "Invalid book payload."

ERROR_RESPONSES: Dict[Type[LibraryError], Tuple[int, str]] = {
    MissingParameterError: (400, "Missing id query parameter."),
    BookNotFoundError: (404, "Book not found!"),
    BookUnavailableError: (400, "Book not available."),
}


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorModel(message=message).model_dump())


@app.exception_handler(LibraryError)
async def library_error_handler(request: Request, exc: LibraryError):
    for error_type in type(exc).__mro__:
        if error_type in ERROR_RESPONSES:
            status_code, message = ERROR_RESPONSES[error_type]
            break
    else:
        logger.error(f"Unmapped library error on {request.method} {request.url.path}: {exc}")
        return _error_response(500, "Internal server error.")
    logger.info(f"{request.method} {request.url.path} -> {status_code}: {exc}")
    return _error_response(status_code, message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Rejected body on {request.method} {request.url.path}: {exc.errors()}")
    return _error_response(400, INVALID_PAYLOAD_MESSAGE)


# --- Health check ---
@app.get("/health", response_model=HealthModel)
def health():
    """Lightweight liveness endpoint."""
    return HealthModel(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        total_books=len(library.list_books()),
    )


# --- Books ---
@app.get("/books", response_model=List[BookModel])
def get_books():
    """List every book, in insertion order."""
    return [BookModel(**book.to_dict()) for book in library.list_books()]


@app.get(
    "/books/{book_id}",
    response_model=BookModel,
    responses={404: {"model": ErrorModel}},
)
def get_book(book_id: str):
    """Get the first book with the given id."""
    return BookModel(**library.find_book(book_id).to_dict())


@app.post(
    "/books",
    response_model=BookModel,
    status_code=201,
    responses={400: {"model": ErrorModel}},
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": BookModel.model_json_schema()}},
        }
    },
)
async def add_book(request: Request):
    """Add a book to the library exactly as sent.

    The body is decoded as JSON whatever its Content-Type header says.
    """
    try:
        payload = BookModel.model_validate_json(await request.body())
    except ValidationError as e:
        raise RequestValidationError(e.errors()) from e
    book = library.add_book(payload.to_book())
    return BookModel(**book.to_dict())


@app.put(
    "/checkout",
    response_model=BookModel,
    responses={400: {"model": ErrorModel}, 404: {"model": ErrorModel}},
)
def checkout_book(book_id: Optional[str] = Query(None, alias="id")):
    """Check a book out, decreasing its quantity by one."""
    return BookModel(**library.checkout_book(book_id).to_dict())


@app.put(
    "/return",
    response_model=BookModel,
    responses={400: {"model": ErrorModel}, 404: {"model": ErrorModel}},
)
def return_book(book_id: Optional[str] = Query(None, alias="id")):
    """Return a book, increasing its quantity by one."""
    return BookModel(**library.return_book(book_id).to_dict())
