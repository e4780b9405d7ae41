"""Core Application Layer: Orchestrates use cases and application logic.

Connects the domain layer with the infrastructure layer: consumer services
built on the content loader, and the command handler behind the CLI.
"""
