"""
Encoding of the feed/category/tag ID lists stored on a rule.

The database keeps these lists as JSON arrays of integers (``"[1, 2]"``).
Everything past the storage edge works with ``frozenset[int]``.
"""
import json
import logging
from typing import FrozenSet, Iterable, Optional

from feed_rules.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def parse_id_list(raw: Optional[str], display_name: str, field: Optional[str] = None,
                  required: bool = True) -> FrozenSet[int]:
    """Strictly parse a JSON integer array.

    Raises ConfigurationError naming ``display_name`` when the value is
    missing (and required), is not JSON, or is not an array of integers.
    """
    if raw is None or not raw.strip():
        if required:
            raise ConfigurationError(f"{display_name} are required", field=field)
        return frozenset()

    try:
        data = json.loads(raw)
    except ValueError:
        raise ConfigurationError(f"{display_name} contains invalid JSON", field=field)

    # bool is a subclass of int, JSON true/false are not IDs
    if not isinstance(data, list) or not all(isinstance(i, int) and not isinstance(i, bool) for i in data):
        raise ConfigurationError(f"{display_name} contains invalid JSON (expected integer array)", field=field)

    if required and not data:
        raise ConfigurationError(f"{display_name} are required", field=field)
    return frozenset(data)


def decode_id_list(raw: Optional[str]) -> FrozenSet[int]:
    """Lenient decode used when reading stored rows: bad data means no IDs"""
    try:
        return parse_id_list(raw, 'IDs', required=False)
    except ConfigurationError as e:
        logger.warning(f"Ignoring malformed stored ID list {raw!r}: {e}")
        return frozenset()


def encode_id_list(ids: Optional[Iterable[int]]) -> str:
    """Serialize IDs for storage, sorted so equal sets encode equally"""
    return json.dumps(sorted(set(ids or ())))
