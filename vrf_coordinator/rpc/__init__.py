"""
JSON-RPC and HTTP surface for the VRF coordinator.

- `methods`: pydantic-validated method shims (`RPC_METHODS`)
- `mount`:   FastAPI router + JSON-RPC endpoint (`mount_vrf_rpc`)
"""

from .methods import RPC_METHODS
from .mount import get_router, handle_jsonrpc, mount_vrf_rpc

__all__ = ["RPC_METHODS", "get_router", "handle_jsonrpc", "mount_vrf_rpc"]
