from .base import degrade_to, optional_signal
from .cache import SignalCache
from .open_data import OpenDataGateway, SignalGateway

__all__ = ["OpenDataGateway", "SignalCache", "SignalGateway", "degrade_to", "optional_signal"]
