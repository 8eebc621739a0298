from __future__ import annotations

import uuid
from typing import Any, Mapping

import msgpack
from typing_extensions import cast

from pantry._core._headers import Headers
from pantry._core.models import Entry, EntryMeta, RequestKey, Response
from pantry._utils import make_async_iterator


def filter_out_pantry_metadata(data: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if not k.startswith("pantry_")}


def pack(value: Entry, /) -> bytes:
    """
    Serialize the response head and entry metadata.

    The id, the key and the body are kept next to the packed data by the
    storages, so they can be indexed and read without unpacking.
    """
    return cast(
        bytes,
        msgpack.packb(
            {
                "response": {
                    "status_code": value.response.status_code,
                    "headers": value.response.headers._headers,
                    "extra": filter_out_pantry_metadata(value.response.metadata),
                },
                "meta": {
                    "created_at": value.meta.created_at,
                },
            }
        ),
    )


def unpack(value: bytes, /, id_: uuid.UUID, key: RequestKey, body: bytes) -> Entry:
    data = msgpack.unpackb(value)
    return Entry(
        id=id_,
        key=key,
        response=Response(
            status_code=data["response"]["status_code"],
            headers=Headers(data["response"]["headers"]),
            metadata=data["response"]["extra"],
            stream=make_async_iterator([body]),
        ),
        meta=EntryMeta(
            created_at=data["meta"]["created_at"],
        ),
    )
