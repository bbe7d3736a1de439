class EpcError(Exception):
    """Base class for errors raised by the catalog viewer core."""


class UnknownAssemblyError(EpcError, KeyError):
    def __init__(self, assembly_id: str) -> None:
        super().__init__(assembly_id)
        self.assembly_id = assembly_id

    def __str__(self) -> str:
        return f"Unknown assembly: {self.assembly_id}"


class UnknownBomItemError(EpcError, KeyError):
    def __init__(self, item_id: str) -> None:
        super().__init__(item_id)
        self.item_id = item_id

    def __str__(self) -> str:
        return f"Unknown BOM item: {self.item_id}"


class DataStoreError(EpcError):
    """A read or write against the catalog data store failed."""
