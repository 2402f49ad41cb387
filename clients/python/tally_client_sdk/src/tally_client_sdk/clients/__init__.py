from .counting_client import CountingClient, new_movement
from .host_client import HostClient

__all__ = ["CountingClient", "HostClient", "new_movement"]
