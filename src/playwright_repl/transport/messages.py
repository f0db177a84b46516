"""Wire messages exchanged with the daemon.

One JSON object per line:

    -> {"id":1,"method":"run","params":{"args":{"_":["click","e5"]},"cwd":"/"},"version":"0.1.0"}
    <- {"id":1,"result":{"text":"..."},"version":"0.1.0"}
    <- {"id":2,"error":"Unknown ref e99","version":"0.1.0"}
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, StrictInt

DELIMITER = b"\n"


class WireModel(BaseModel):
    """Base model for wire messages; unknown fields are kept, not rejected."""

    model_config = ConfigDict(extra="allow")


class Request(WireModel):
    """Client -> daemon request."""

    id: StrictInt
    method: str
    params: Any = None
    version: str

    def encode(self) -> bytes:
        """Serialize as one newline-terminated record.

        json.dumps escapes control characters inside strings, so the
        payload never contains a raw delimiter.

        Raises:
            TypeError, ValueError: If params are not JSON serializable.
        """
        data = json.dumps(
            self.model_dump(),
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
        return data.encode("utf-8") + DELIMITER


class Response(WireModel):
    """Daemon -> client response.

    ``version`` is carried but not checked; a mismatch is the daemon's concern.
    """

    id: StrictInt
    result: Any = None
    error: Any = None
    version: str | None = None

    @property
    def failed(self) -> bool:
        return bool(self.error)
