"""
MAAS client - Three-layer architecture for the MAAS API.

Layers:
- core: Session negotiation, request primitives, transport and errors
- sdk: High-level MAASClient with nice ergonomics
- cli: Opinionated command-line interface
"""

from maas_client.sdk import MAASClient

__version__ = "0.1.0"
__all__ = ["MAASClient"]
