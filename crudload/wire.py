"""
Wire formats understood by the driver.

Each backend under test speaks one encoding.  A :class:`WireFormat`
turns a :class:`~crudload.models.UserRecord` into request-body bytes and
pulls the server-assigned identifier back out of a response body.  The
scenario runner only ever talks to this interface, so a stricter decoder
can be swapped in without touching the request sequence.

Decoding never raises: an undecodable body simply means "no identifier",
which makes the scenario skip the steps that need one.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from .exceptions import ConfigError
from .models import UserRecord

logger = logging.getLogger(__name__)


class WireFormat:
    """Interface shared by all encodings."""

    name: str = ""
    media_type: str = ""

    def encode(self, record: UserRecord) -> bytes:
        raise NotImplementedError

    def decode_id(self, body: bytes) -> str | None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(media_type={self.media_type!r})"


class JsonWireFormat(WireFormat):
    """Structured JSON bodies (``application/json``)."""

    name = "json"
    media_type = "application/json"

    # Lookup order for the identifier.  Go's encoding/json emits the
    # exported field name ``ID`` when the struct carries no json tag.
    id_keys = ("id", "ID")

    def encode(self, record: UserRecord) -> bytes:
        return json.dumps(record.as_dict()).encode("utf-8")

    def decode_id(self, body: bytes) -> str | None:
        try:
            data = json.loads(body)
        except ValueError:
            logger.debug("Response body is not valid JSON; no identifier")
            return None

        if not isinstance(data, dict):
            return None

        for key in self.id_keys:
            value = _coerce_id(data.get(key))
            if value is not None:
                return value
        return None


class ToonWireFormat(WireFormat):
    """
    Line-oriented ``key: value`` bodies (``application/toon``).

    The identifier is taken from the first line that *contains* ``id:``
    anywhere, so ``validId: 7`` matches as well as ``id: 7``.  Use
    :class:`ExactToonWireFormat` when only a literal ``id`` key should
    count.
    """

    name = "toon"
    media_type = "application/toon"

    def encode(self, record: UserRecord) -> bytes:
        # No escaping: values containing newlines or colons are not supported.
        return "\n".join(f"{key}: {value}" for key, value in record.fields()).encode("utf-8")

    def decode_id(self, body: bytes) -> str | None:
        text = body.decode("utf-8", errors="replace")
        for line in text.split("\n"):
            if self._is_id_line(line):
                value = line.partition(":")[2].strip()
                return value or None
        return None

    def _is_id_line(self, line: str) -> bool:
        return "id:" in line


class ExactToonWireFormat(ToonWireFormat):
    """TOON decoder that only accepts a line whose key is exactly ``id``."""

    name = "toon-exact"

    def _is_id_line(self, line: str) -> bool:
        key, separator, _ = line.partition(":")
        return bool(separator) and key.strip() == "id"


def _coerce_id(value: Any) -> str | None:
    if value is None or isinstance(value, (bool, dict, list)):
        return None
    if isinstance(value, float) and value.is_integer():
        # 7.0 addresses /users/7.
        return str(int(value))
    text = str(value)
    return text or None


WIRE_FORMATS: dict[str, type[WireFormat]] = {
    JsonWireFormat.name: JsonWireFormat,
    ToonWireFormat.name: ToonWireFormat,
    ExactToonWireFormat.name: ExactToonWireFormat,
}


def get_wire_format(name: str) -> WireFormat:
    """
    Instantiate the wire format registered under ``name``.

    Raises:
        ConfigError: If no format is registered under that name.
    """
    try:
        return WIRE_FORMATS[name]()
    except KeyError:
        raise ConfigError(
            f"Unknown wire format {name!r}; expected one of {', '.join(WIRE_FORMATS)}"
        ) from None
