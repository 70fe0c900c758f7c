"""
Gateway configuration.
"""

from .loader import GatewayConfig, default_gateway_config, load_gateway_config

__all__ = ["GatewayConfig", "default_gateway_config", "load_gateway_config"]
