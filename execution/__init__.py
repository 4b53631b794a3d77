from execution.subgraph_client import DataSourceError, SubgraphClient, SubgraphSource

__all__ = [
    "DataSourceError",
    "SubgraphClient",
    "SubgraphSource",
]
