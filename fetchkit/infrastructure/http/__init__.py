"""HTTP API client implementation.

Contains the resilient typed JSON client, its body decoding rules and the
paginated-shape discovery used for envelopes of unknown layout.
Bounded Context: Remote API Access
"""
