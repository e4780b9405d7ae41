"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (HTTP APIs, the static
content store, the console) by implementing the interfaces defined in the
domain layer. Also includes resilience, caching and configuration services.
"""
