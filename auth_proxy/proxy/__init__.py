from .translator import translate
from .relay import build_response, relay

__all__ = ["translate", "relay", "build_response"]
