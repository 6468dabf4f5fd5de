"""Grid hosts: the interface the engine drives and its adapters."""

from .frame_grid import FrameGrid
from .protocol import GridHost, PageInfo

__all__ = ["FrameGrid", "GridHost", "PageInfo"]
