import json

import pytest
from typer.testing import CliRunner
from unittest.mock import MagicMock

from main import app
from book import Book
from client import LibraryClient
from library import BookNotFoundError, BookUnavailableError, ExternalServiceError
from utils.ui_helpers import OUTPUT_MODE_ENV

runner = CliRunner()


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")


def test_list_books(monkeypatch):
    books = [Book("1", "In Search of Lost Time", "Marcel Proust", 2)]
    monkeypatch.setattr(LibraryClient, "list_books", MagicMock(return_value=books))

    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert "1 - In Search of Lost Time by Marcel Proust (2 available)" in result.stdout


def test_list_no_books(monkeypatch):
    monkeypatch.setattr(LibraryClient, "list_books", MagicMock(return_value=[]))

    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert "No books in library." in result.stdout


def test_list_json_output(monkeypatch):
    books = [Book("2", "The Great Gatsby", "F. Scott Fitzgerald", 5)]
    monkeypatch.setattr(LibraryClient, "list_books", MagicMock(return_value=books))

    result = runner.invoke(app, ["--output", "json", "list"])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == [
        {"id": "2", "title": "The Great Gatsby", "author": "F. Scott Fitzgerald", "quantity": 5}
    ]


def test_get_book(monkeypatch):
    find_mock = MagicMock(return_value=Book("3", "War and Peace", "Leo Tolstoy", 6))
    monkeypatch.setattr(LibraryClient, "find_book", find_mock)

    result = runner.invoke(app, ["get", "3"])
    assert result.exit_code == 0
    assert "Book: 3 - War and Peace by Leo Tolstoy (6 available)" in result.stdout
    find_mock.assert_called_once_with("3")


def test_get_book_not_found(monkeypatch):
    monkeypatch.setattr(LibraryClient, "find_book", MagicMock(side_effect=BookNotFoundError("Book not found!")))

    result = runner.invoke(app, ["get", "99"])
    assert result.exit_code == 1
    assert "Error: Book not found!" in result.stdout


def test_add_book(monkeypatch):
    add_mock = MagicMock(side_effect=lambda book: book)
    monkeypatch.setattr(LibraryClient, "add_book", add_mock)

    result = runner.invoke(app, ["add", "4", "Dune", "Frank Herbert", "--quantity", "3"])
    assert result.exit_code == 0
    assert "Added: 4 - Dune by Frank Herbert (3 available)" in result.stdout
    add_mock.assert_called_once_with(Book("4", "Dune", "Frank Herbert", 3))


def test_checkout_book(monkeypatch):
    checkout_mock = MagicMock(return_value=Book("2", "The Great Gatsby", "F. Scott Fitzgerald", 4))
    monkeypatch.setattr(LibraryClient, "checkout_book", checkout_mock)

    result = runner.invoke(app, ["checkout", "2"])
    assert result.exit_code == 0
    assert "Checked out: 2 - The Great Gatsby by F. Scott Fitzgerald (4 available)" in result.stdout
    checkout_mock.assert_called_once_with("2")


def test_checkout_unavailable(monkeypatch):
    monkeypatch.setattr(LibraryClient, "checkout_book", MagicMock(side_effect=BookUnavailableError("Book not available.")))

    result = runner.invoke(app, ["checkout", "1"])
    assert result.exit_code == 1
    assert "Error: Book not available." in result.stdout


def test_return_book(monkeypatch):
    return_mock = MagicMock(return_value=Book("1", "In Search of Lost Time", "Marcel Proust", 3))
    monkeypatch.setattr(LibraryClient, "return_book", return_mock)

    result = runner.invoke(app, ["return", "1"])
    assert result.exit_code == 0
    assert "Returned: 1 - In Search of Lost Time by Marcel Proust (3 available)" in result.stdout
    return_mock.assert_called_once_with("1")


def test_service_unreachable(monkeypatch):
    monkeypatch.setattr(
        LibraryClient, "list_books",
        MagicMock(side_effect=ExternalServiceError("Library service unreachable at http://localhost:8080")),
    )

    result = runner.invoke(app, ["list"])
    assert result.exit_code == 1
    assert "unreachable" in result.stdout


def test_serve_runs_uvicorn(monkeypatch):
    run_mock = MagicMock(return_value=MagicMock(returncode=0))
    monkeypatch.setattr("main.subprocess.run", run_mock)

    result = runner.invoke(app, ["serve", "--host", "0.0.0.0", "--port", "9000", "--no-reload"])
    assert result.exit_code == 0
    args = run_mock.call_args[0][0]
    assert "api:app" in args
    assert args[args.index("--host") + 1] == "0.0.0.0"
    assert args[args.index("--port") + 1] == "9000"
    assert "--reload" not in args
