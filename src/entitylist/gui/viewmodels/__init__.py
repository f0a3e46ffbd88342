from .base import BaseViewModel
from .list_controller import ListController
from .list_state import ItemSource, ListView, Notice
from .selection import SelectionCoordinator
from .signal import ObservableProperty, Signal

__all__ = [
    "BaseViewModel",
    "ItemSource",
    "ListController",
    "ListView",
    "Notice",
    "ObservableProperty",
    "SelectionCoordinator",
    "Signal",
]
