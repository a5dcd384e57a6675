import logging
import subprocess
import sys
from typing import Optional

import typer
from rich.console import Console

from book import Book
from client import LibraryClient
from config import configure_logging, settings
from library import LibraryError
from utils.ui_helpers import set_output_mode, print_list_result, print_book_result

APP_NAME = "Book Lending CLI"

console = Console()
logger = logging.getLogger(__name__)

app = typer.Typer(help=APP_NAME)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level, overrides LOG_LEVEL"),
):
    """Global options for the CLI (output mode, logging)."""
    configure_logging(log_level.upper() if log_level else None)
    if output:
        set_output_mode(output)


def _fail(exc: LibraryError) -> None:
    """Report a failed operation and stop with a non-zero exit code."""
    logger.debug(f"Command failed: {exc!r}")
    print(f"Error: {exc}")
    raise typer.Exit(code=1)


@app.command("list")
def cli_list():
    """List every book in the library."""
    try:
        with LibraryClient() as client:
            books = client.list_books()
    except LibraryError as e:
        _fail(e)
    print_list_result(books)


@app.command("get")
def cli_get(book_id: str = typer.Argument(..., metavar="ID")):
    """Show the first book with the given id."""
    try:
        with LibraryClient() as client:
            book = client.find_book(book_id)
    except LibraryError as e:
        _fail(e)
    print_book_result(book)


@app.command("add")
def cli_add(
    book_id: str = typer.Argument(..., metavar="ID"),
    title: str = typer.Argument(...),
    author: str = typer.Argument(...),
    quantity: int = typer.Option(0, "--quantity", "-q", help="Copies available for checkout"),
):
    """Add a book to the library."""
    try:
        with LibraryClient() as client:
            book = client.add_book(Book(id=book_id, title=title, author=author, quantity=quantity))
    except LibraryError as e:
        _fail(e)
    print_book_result(book, heading="Added")


@app.command("checkout")
def cli_checkout(book_id: str = typer.Argument(..., metavar="ID")):
    """Check out one copy of a book."""
    try:
        with LibraryClient() as client:
            book = client.checkout_book(book_id)
    except LibraryError as e:
        _fail(e)
    print_book_result(book, heading="Checked out")


@app.command("return")
def cli_return(book_id: str = typer.Argument(..., metavar="ID")):
    """Return one copy of a book."""
    try:
        with LibraryClient() as client:
            book = client.return_book(book_id)
    except LibraryError as e:
        _fail(e)
    print_book_result(book, heading="Returned")


@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind host (default: API_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port (default: API_PORT)"),
    reload: bool = typer.Option(settings.debug, "--reload/--no-reload", help="Restart on code changes"),
):
    """Start the HTTP service with Uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    url = f"http://{host}:{port}/"
    console.print(f"[green]Starting {settings.app_name} on [link={url}]{url}[/link][/]")
    args = [
        sys.executable,
        "-m", "uvicorn",
        "api:app",
        "--host", host,
        "--port", str(port),
        "--log-level", settings.log_level.lower(),
    ]
    if reload:
        args.append("--reload")
    result = subprocess.run(args)
    if result.returncode != 0:
        console.print(f"[bold red]Server exited with code {result.returncode}[/]")
        raise typer.Exit(code=result.returncode)


if __name__ == "__main__":
    app()
