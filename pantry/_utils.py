from __future__ import annotations

import typing as tp
from pathlib import Path
from typing import AsyncIterator, Iterable

import httpx

T = tp.TypeVar("T")


async def make_async_iterator(
    iterable: Iterable[bytes],
) -> AsyncIterator[bytes]:
    for item in iterable:
        yield item


def filter_mapping(mapping: tp.Mapping[str, T], keys_to_exclude: tp.Iterable[str]) -> tp.Dict[str, T]:
    """
        Filter out specified keys from a string-keyed mapping using case-insensitive comparison.

        Args:
            mapping: The input mapping with string keys to filter.
            keys_to_exclude: An iterable of string keys to exclude (case-insensitive).

        Returns:
            A new dictionary with the specified keys excluded.

        Example:
    ```python
            original = {'a': 1, 'B': 2, 'c': 3}
            filtered = filter_mapping(original, ['b'])
            # filtered will be {'a': 1, 'c': 3}
    ```
    """
    exclude_set = {k.lower() for k in keys_to_exclude}
    return {k: v for k, v in mapping.items() if k.lower() not in exclude_set}


def normalize_url(url: str, base_url: str | None = None) -> str:
    """
    Resolve ``url`` against ``base_url`` and bring it into the form httpx sends.

    The scheme and host are lowercased, a default port is dropped and the path
    is percent-encoded, so a manifest entry and the request for it produce the
    same key. Fragments never reach the network, so ``/index.html#top`` and
    ``/index.html`` name the same stored resource.

    Examples:
        >>> normalize_url("https://example.com/app.js#L10")
        'https://example.com/app.js'
        >>> normalize_url("/styles.css", base_url="https://example.com/app/")
        'https://example.com/styles.css'
        >>> normalize_url("./", base_url="https://example.com/app/")
        'https://example.com/app/'
        >>> normalize_url("/icon 192.png", base_url="https://Example.com:443/")
        'https://example.com/icon%20192.png'
    """
    parsed = httpx.URL(base_url).join(url) if base_url is not None else httpx.URL(url)
    return str(parsed.copy_with(fragment=None))


def parse_flag(value: str) -> bool | None:
    value = value.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    return None


def ensure_cache_dict(base_path: Path | None = None) -> Path:
    _base_path = base_path if base_path is not None else Path(".cache/pantry")
    _gitignore_file = _base_path / ".gitignore"

    _base_path.mkdir(parents=True, exist_ok=True)

    if not _gitignore_file.is_file():
        with open(_gitignore_file, "w", encoding="utf-8") as f:
            f.write("# Automatically created by Pantry\n*")
    return _base_path
