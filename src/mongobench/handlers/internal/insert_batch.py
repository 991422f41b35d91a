from typing import Any, Dict, List, Optional


class _InsertBatch:
    """
    Worker-local accumulation of pending insert documents, one buffer per table.

    Not thread safe: each `MongoBinding` owns exactly one batch, used only by
    its worker thread.
    """

    def __init__(self, batch_size: int):
        if batch_size < 1:
            raise ValueError(f"Batch size must be >= 1. Got {batch_size}")
        self.batch_size = batch_size
        self._documents: Dict[str, List[Dict[str, Any]]] = {}

    def __len__(self) -> int:
        return sum(len(docs) for docs in self._documents.values())

    @property
    def tables(self) -> List[str]:
        """Tables with buffered documents, in first-insert order."""
        return [t for t, docs in self._documents.items() if docs]

    def add(self, table: str, document: Dict[str, Any]) -> bool:
        """Buffers a document; returns True once the buffer of `table` is full."""
        docs = self._documents.setdefault(table, [])
        docs.append(document)
        return len(docs) >= self.batch_size

    def drain(self, table: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
        """
        Empties the buffer of `table`, or every buffer when `table` is None.

        Returns:
            The drained documents keyed by table; tables without documents are omitted.
        """
        names = self.tables if table is None else [table]
        drained: Dict[str, List[Dict[str, Any]]] = {}
        for name in names:
            docs = self._documents.pop(name, [])
            if docs:
                drained[name] = docs
        return drained
