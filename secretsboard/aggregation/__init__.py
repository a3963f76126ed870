from secretsboard.aggregation.merger import CollectionInput, MergedCollection, merge
from secretsboard.aggregation.table import ResourceTable, RowView, TableState, TableView

__all__ = [
    "CollectionInput",
    "MergedCollection",
    "ResourceTable",
    "RowView",
    "TableState",
    "TableView",
    "merge",
]
