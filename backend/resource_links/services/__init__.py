"""Services Layer — async shell that drives the store and notifier around core rules.

Invariants:
    - One component per file: child resolver, association mutator, link orchestrator
    - Collaborators (store, notifier) are injected, never looked up globally
"""
