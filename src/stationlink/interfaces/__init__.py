from .item import Item
from .station import Station

__all__ = ["Item", "Station"]
