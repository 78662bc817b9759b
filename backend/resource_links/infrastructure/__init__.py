"""Infrastructure — database sessions, entity store, relation metadata, pub/sub, logging.

Invariants:
    - Implements the Protocols declared in core/store_protocols.py
    - Single async engine and single pub/sub hub per process (initialized on startup)
"""
