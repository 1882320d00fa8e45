"""
Inference engine clients. Each turns a prompt into raw model text.
"""
from codescan.engines.base_client import BaseEngineClient
from codescan.engines.cloud_client import CloudEngineClient
from codescan.engines.local_client import LocalEngineClient

__all__ = ["BaseEngineClient", "CloudEngineClient", "LocalEngineClient"]
