# MIT License
# Copyright (c) 2025 Hashborn

"""
acctkit - smart-account transaction admission and execution engine.

Subpackages:
- protocol: request types, crypto primitives, network parameters
- blockchain: host environment, account engine, storage, observability
- cli: key store, request builder, command line entry point
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
