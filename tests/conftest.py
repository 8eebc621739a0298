import os
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import anysqlite
import pytest
from anyio.lowlevel import checkpoint

from pantry import AsyncBaseRegistry, AsyncInMemoryRegistry, AsyncSqliteRegistry, Headers, Request, Response
from pantry._utils import make_async_iterator

BASE_URL = "https://tasks.example.com/"

SHELL = [
    "/",
    "/index.html",
    "/styles.css",
    "/app.js",
    "/manifest.json",
]


class FakeNetwork:
    """
    A request sender answering from a routing table.

    Unknown URLs get a 404, URLs listed in ``failing`` raise ``ConnectionError``.
    Every request that reaches it is recorded in ``calls``.
    """

    def __init__(
        self,
        routes: Optional[Dict[str, Tuple[int, bytes]]] = None,
        failing: Iterable[str] = (),
    ) -> None:
        self.routes = routes if routes is not None else {}
        self.failing = set(failing)
        self.calls: List[Tuple[str, str]] = []

    @classmethod
    def serving(cls, *paths: str, base_url: str = BASE_URL) -> "FakeNetwork":
        routes = {}
        for path in paths:
            url = base_url.rstrip("/") + path
            routes[url] = (200, f"body of {path}".encode())
        return cls(routes)

    async def __call__(self, request: Request) -> Response:
        self.calls.append((request.method, request.url))
        await checkpoint()
        if request.url in self.failing:
            raise ConnectionError(f"Could not connect to {request.url}")
        status_code, body = self.routes.get(request.url, (404, b"not found"))
        return Response(
            status_code=status_code,
            headers=Headers({"content-type": "text/plain", "content-length": str(len(body))}),
            stream=make_async_iterator([body]),
        )


@pytest.fixture(params=["memory", "sqlite"])
def registry(request: pytest.FixtureRequest, tmp_path: Path) -> AsyncBaseRegistry:
    if request.param == "memory":
        return AsyncInMemoryRegistry()
    return AsyncSqliteRegistry(database_path=tmp_path / "pantry_cache.db")


def format_value(value: Any, col_name: str, col_type: str) -> str:
    """Format a value for display based on its type and column name."""

    if value is None:
        return "NULL"

    # Handle BLOB columns
    if col_type.upper() == "BLOB":
        if isinstance(value, bytes):
            # Show string if it's printable
            try:
                decoded = value.decode("utf-8")
                if all(32 <= ord(c) <= 126 or c in "\n\r\t" for c in decoded):
                    return f"(str) '{decoded}'"
            except UnicodeDecodeError:
                pass

            # Show hex representation for binary data
            hex_str = value.hex()
            if len(hex_str) > 64:
                return f"(bytes) 0x{hex_str[:60]}... ({len(value)} bytes)"
            return f"(bytes) 0x{hex_str} ({len(value)} bytes)"
        return repr(value)

    # Handle timestamps - ONLY show date, not the raw timestamp
    if col_name.endswith("_at") and isinstance(value, (int, float)):
        try:
            dt = date.fromtimestamp(value)
            return dt.isoformat()
        except (ValueError, OSError):
            return str(value)

    # Handle TEXT columns
    if col_type.upper() == "TEXT":
        return f"'{value}'"

    # Handle other types
    return str(value)


async def aprint_sqlite_state(conn: anysqlite.Connection, exclude_columns: Iterable[str] = ()) -> str:
    """
    Print all tables and their rows in a pretty format suitable for inline snapshots.

    Args:
        conn: SQLite database connection
        exclude_columns: Column names left out of the output, e.g. random ids

    Returns:
        Formatted string representation of the database state
    """
    excluded = set(exclude_columns)
    cursor = await conn.cursor()

    # Get all table names
    await cursor.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")
    tables = [row[0] for row in await cursor.fetchall()]

    output_lines = []
    output_lines.append("=" * 80)
    output_lines.append("DATABASE SNAPSHOT")
    output_lines.append("=" * 80)

    for table_name in tables:
        # Get column information
        await cursor.execute(f"PRAGMA table_info({table_name})")
        columns = await cursor.fetchall()
        column_names = [col[1] for col in columns]
        column_types = {col[1]: col[2] for col in columns}

        # Get all rows
        await cursor.execute(f"SELECT * FROM {table_name} ORDER BY rowid")
        rows = await cursor.fetchall()

        output_lines.append("")
        output_lines.append(f"TABLE: {table_name}")
        output_lines.append("-" * 80)
        output_lines.append(f"Rows: {len(rows)}")
        output_lines.append("")

        if not rows:
            output_lines.append("  (empty)")
            continue

        # Format each row
        for idx, row in enumerate(rows, 1):
            output_lines.append(f"  Row {idx}:")

            for col_name, value in zip(column_names, row):
                if col_name in excluded:
                    continue
                col_type = column_types[col_name]
                formatted_value = format_value(value, col_name, col_type)
                output_lines.append(f"    {col_name:15} = {formatted_value}")

            if idx < len(rows):
                output_lines.append("")

    output_lines.append("")
    output_lines.append("=" * 80)

    result = "\n".join(output_lines)
    return result


@pytest.fixture()
def use_temp_dir(tmpdir):
    cur_dir = os.getcwd()
    os.chdir(tmpdir)
    yield
    os.chdir(cur_dir)
