"""Process configuration: pydantic settings and CLI/environment loading."""

from .loader import build_parser, load_settings  # noqa: F401
from .model import DeliveryMode, RelaySettings  # noqa: F401

__all__ = ["DeliveryMode", "RelaySettings", "build_parser", "load_settings"]
