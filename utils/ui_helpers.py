import os
import json
from typing import List, Any
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()

def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode

def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()

def _book_payload(book: Any) -> dict:
    return {
        "id": getattr(book, "id", ""),
        "title": getattr(book, "title", ""),
        "author": getattr(book, "author", ""),
        "quantity": getattr(book, "quantity", 0),
    }

def format_book_line(book: Any) -> str:
    return f"{book.id} - {book.title} by {book.author} ({book.quantity} available)"

def print_list_result(books: List[Any]) -> None:
    """Print the book list in the current output mode.
    - plain: 'ID - Title by Author (N available)' lines, or 'No books in library.'
    - json: JSON array of book objects
    - rich: Rich table
    """
    mode = get_output_mode()

    if not books:
        print("No books in library.")
        return

    if mode == "json":
        print(json.dumps([_book_payload(b) for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Quantity", justify="right", style="green")
        for b in books:
            table.add_row(str(b.id), b.title, b.author, str(b.quantity))
        _console.print(table)
    else:
        for b in books:
            print(format_book_line(b))

def print_book_result(book: Any, heading: str = "Book") -> None:
    """Print a single book in the current output mode."""
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps(_book_payload(book), ensure_ascii=False))
    elif mode == "rich":
        content = (
            f"[bold]ID:[/] {book.id}\n"
            f"[bold]Title:[/] {book.title}\n"
            f"[bold]Author:[/] {book.author}\n"
            f"[bold]Quantity:[/] {book.quantity}"
        )
        _console.print(Panel.fit(content, title=f"📖 {heading}", border_style="blue"))
    else:
        print(f"{heading}: {format_book_line(book)}")
