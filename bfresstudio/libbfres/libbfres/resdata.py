"""libbfres.resdata

Contract shared by every entity stored in a BFRES file.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .loader import ResFileLoader
    from .saver import ResFileSaver


class ResData(metaclass=abc.ABCMeta):
    """An entity that reads itself at the loader position and writes itself
    at the saver position.  Subclasses must be constructible without
    arguments, the loader instantiates them before calling ``load``."""

    @abc.abstractmethod
    def load(self, loader: "ResFileLoader") -> None:
        pass

    @abc.abstractmethod
    def save(self, saver: "ResFileSaver") -> None:
        pass
