"""
Record store factory.

Maps a store kind name to a backend class. ``json`` is the only kind with an
implementation; ``sqlite`` is reserved (it has a default file name) but fails
at construction, as does any unknown kind. Nothing is ever substituted.
"""

from .errors import UnimplementedStoreError, UnsupportedStoreError
from .protocol import RecordStoreProtocol

STORE_JSON = "json"
STORE_SQLITE = "sqlite"

# Kinds that are recognized but have no backend yet
RESERVED_KINDS = frozenset({STORE_SQLITE})


def available_kinds() -> list[str]:
    return [STORE_JSON]


def create_store(kind: str = STORE_JSON) -> RecordStoreProtocol:
    """
    Construct an uninitialized store for ``kind``.

    Raises:
        UnimplementedStoreError: kind is reserved but not implemented
        UnsupportedStoreError: kind is unknown
    """
    if kind == STORE_JSON:
        from .json_store import JSONRecordStore
        return JSONRecordStore()
    if kind in RESERVED_KINDS:
        raise UnimplementedStoreError(f"{kind} store is not implemented yet")
    raise UnsupportedStoreError(
        f"Unsupported store kind: {kind!r}. Available: {available_kinds()}"
    )
