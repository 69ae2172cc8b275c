"""
Signaling Gateway Components.

Organized into domain-specific modules:
- core/       - Foundational components (constants, exceptions, context)
- connection/ - Connection ids and registry
- events/     - Envelope types and message routing
- endpoints/  - WebSocket endpoint adapter

Import from the specific submodules, e.g.
    from signaling_gateway.components.connection import ConnectionRegistry
"""
