from .firmware import Firmware

__all__ = ["Firmware"]
