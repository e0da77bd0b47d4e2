"""
Text Writer - Output sink for visitors that render the snapshot as text.

Owns the destination stream: writes to a file, to the screen, or both,
and splits file output across size-bounded parts on request.
"""
import logging
import sys
from abc import ABC
from pathlib import Path
from typing import Optional, TextIO

from services.image_visitor import ImageVisitor

logger = logging.getLogger(__name__)


class TextWriterImageVisitor(ImageVisitor, ABC):
    """
    Base class for visitors producing text output.

    Subclasses call ``write`` for each piece of output and ``roll_if_needed``
    at points where a new part may begin.
    """

    def __init__(
        self,
        filename: Optional[str],
        print_to_screen: bool = False,
        number_of_parts: int = 1,
        part_size: Optional[int] = None,
    ):
        """
        Initialize the sink and open the first part.

        Args:
            filename: Destination file (None for screen-only output)
            print_to_screen: Echo all output to stdout
            number_of_parts: Maximum number of output parts (>= 1)
            part_size: Byte size after which a new part begins

        Raises:
            ValueError: If neither a file nor the screen is selected,
                or number_of_parts is not positive
        """
        if number_of_parts < 1:
            raise ValueError(f"number_of_parts must be >= 1, got {number_of_parts}")
        if filename is None and not print_to_screen:
            raise ValueError("No output selected: give a filename or print to screen")

        self.filename = filename
        self.print_to_screen = print_to_screen
        self.number_of_parts = number_of_parts
        self.part_size = part_size

        self.current_part = 0
        self.bytes_in_part = 0
        self.part_paths: list[Path] = []
        self._stream: Optional[TextIO] = None
        self._finished = False

        self._open_part()

    def _part_path(self, index: int) -> Path:
        if self.number_of_parts == 1:
            return Path(self.filename)
        return Path(f"{self.filename}.{index}")

    def _open_part(self) -> None:
        if self.filename is None:
            return
        path = self._part_path(self.current_part)
        self._stream = open(path, "w", encoding="utf-8")
        self.part_paths.append(path)
        self.bytes_in_part = 0
        logger.debug(f"Opened output part {self.current_part}: {path}")

    def _close_part(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    def write(self, text: str) -> None:
        """
        Append text to the current destination.

        Raises:
            RuntimeError: If the sink has already been finalized
            OSError: If the underlying stream fails
        """
        if self._finished:
            raise RuntimeError("Cannot write to a finished text writer")
        if self.print_to_screen:
            sys.stdout.write(text)
        if self._stream is not None:
            self._stream.write(text)
            self.bytes_in_part += len(text.encode("utf-8"))

    def roll_if_needed(self) -> None:
        """Start the next part once the current one has reached part_size."""
        if self._stream is None or self.part_size is None:
            return
        if self.current_part >= self.number_of_parts - 1:
            return
        if self.bytes_in_part < self.part_size:
            return

        self._close_part()
        self.current_part += 1
        logger.info(f"📄 Rolling output to part {self.current_part} of {self.number_of_parts}")
        self._open_part()

    @property
    def closed(self) -> bool:
        return self._finished

    def close(self) -> None:
        """Close the current part. Later calls are no-ops."""
        if self._finished:
            return
        self._finished = True
        self._close_part()
        if self.print_to_screen:
            sys.stdout.flush()

    def finish(self) -> None:
        if self._finished:
            return
        self.close()
        logger.debug(f"Output finished ({len(self.part_paths)} part(s))")

    def finish_abnormally(self) -> None:
        if self._finished:
            return
        self.close()
        logger.debug("Output closed after abnormal termination")
