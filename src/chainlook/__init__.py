"""ChainLook: declarative widget data engine.

Resolves widget definitions into flat row sets by fetching from subgraph,
IPFS/IPNS and HTTP providers, joining across sources, aggregating and
computing derived fields.
"""

__version__ = "0.1.0"
