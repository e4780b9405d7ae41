"""Domain Layer: value objects, events and interfaces (ports).

Nothing in here performs I/O; infrastructure adapters implement the
interfaces and the core layer orchestrates them.
"""
