from epc_viewer.db.engine import get_engine as _get_engine
from epc_viewer.db.memory import InMemoryEpcStore
from epc_viewer.db.postgres import PostgresEpcStore
from epc_viewer.db.tables import metadata

__all__ = [
    "InMemoryEpcStore",
    "PostgresEpcStore",
    "_get_engine",
    "metadata",
]
