"""Book Lending CLI - output helpers (plain, json and rich renderings)."""
