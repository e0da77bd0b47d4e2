"""
Image Visitor - Callback contract between a snapshot walker and its consumers.

A walker reports the snapshot as a flat, depth-first stream of events:
scope entries, scope exits and leaf values. Visitors rebuild whatever
structure they need from that stream.
"""
from abc import ABC, abstractmethod
from typing import Optional, Union

from core.image_elements import ImageElement

LeafValue = Union[int, str]


class ImageVisitor(ABC):
    """
    Abstract Base Class for snapshot visitors.
    Walkers drive every implementation through these callbacks only.
    """

    @abstractmethod
    def start(self) -> None:
        """Traversal begins."""
        pass

    @abstractmethod
    def finish(self) -> None:
        """Traversal completed normally. Release any resources."""
        pass

    @abstractmethod
    def finish_abnormally(self) -> None:
        """Input ended before the traversal completed. Release any resources."""
        pass

    def close(self) -> None:
        """
        Release resources after the traversal failed for a reason other
        than truncated input. Emits no diagnostics.
        """
        pass

    @abstractmethod
    def visit(self, element: ImageElement, value: LeafValue) -> None:
        """
        Deliver a leaf value.

        Args:
            element: Schema position of the value
            value: Numeric or textual payload
        """
        pass

    @abstractmethod
    def visit_enclosing_element(
        self,
        element: ImageElement,
        key: Optional[ImageElement] = None,
        value: Optional[LeafValue] = None,
    ) -> None:
        """
        Enter a scope, optionally carrying an associated count.

        Args:
            element: Scope being entered
            key: Element naming the count (e.g. NUM_BLOCKS), if any
            value: The count itself, numeric or textual
        """
        pass

    @abstractmethod
    def leave_enclosing_element(self) -> None:
        """Leave the most recently entered scope."""
        pass
