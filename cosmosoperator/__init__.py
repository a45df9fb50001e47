"""Resource models, CometBFT status polling and status caching for Cosmos full nodes."""

__version__ = "0.1.0"