"""Resource Links Package — idempotent association linking over a generic resource API.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
