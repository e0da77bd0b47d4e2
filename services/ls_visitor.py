"""
Ls Image Visitor - ls-style listing of a namespace snapshot.

Each inode is rendered as one line resembling ``ls -l`` output: type and
permissions, replication, owner, group, size, modification time and full
path. Entries appear in the order the walker reports them; the listing is
never sorted, so it cannot be compared line-for-line with a live ``lsr``.
"""
import logging
import sys
from dataclasses import dataclass, fields
from typing import Callable, Optional

from core.errors import ScopeStackError
from core.image_elements import ImageElement, INodeType, format_date
from services.image_visitor import LeafValue
from services.text_writer import TextWriterImageVisitor

logger = logging.getLogger(__name__)

DIRECTORY_GLYPH = "d"
HARDLINK_GLYPH = "h"
REGULAR_GLYPH = "-"
ROOT_PATH = "/"
SYMLINK_ARROW = " -> "

WIDTH_REPLICATION = 2
WIDTH_HARDLINK_ID = 10
WIDTH_USER = 8
WIDTH_GROUP = 10
WIDTH_SIZE = 10
WIDTH_MOD_TIME = 10

# Numeric values with no place in the listing; dropped before any text conversion
DISCARDED_ELEMENTS = frozenset({
    ImageElement.ACCESS_TIME,
    ImageElement.NS_QUOTA,
    ImageElement.DS_QUOTA,
    ImageElement.BLOCK_SIZE,
    ImageElement.BLOCK_ID,
    ImageElement.GENERATION_STAMP,
})


class ScopeStack:
    """LIFO record of the scopes the traversal currently has open."""

    def __init__(self):
        self._elements: list[ImageElement] = []

    def push(self, element: ImageElement) -> None:
        self._elements.append(element)

    def pop(self) -> ImageElement:
        """
        Remove and return the innermost open scope.

        Raises:
            ScopeStackError: If no scope is open
        """
        if not self._elements:
            raise ScopeStackError("Traversal left a scope but none is open")
        return self._elements.pop()

    def peek(self) -> Optional[ImageElement]:
        return self._elements[-1] if self._elements else None

    def __len__(self) -> int:
        return len(self._elements)


@dataclass
class InodeRecord:
    """Values gathered for the inode currently being listed."""
    num_blocks: int = 0  # negative for directories
    perms: str = ""
    replication: str = ""
    username: str = ""
    group: str = ""
    filesize: int = 0
    mod_time: str = ""
    path: str = ""
    link_target: str = ""
    inode_type: str = INodeType.REGULAR_INODE.value
    hardlink_id: str = ""

    def reset(self) -> None:
        """Restore every field to its default before a new inode."""
        for field in fields(self):
            setattr(self, field.name, field.default)

    @property
    def glyph(self) -> str:
        # The negative block count wins over whatever INODE_TYPE said
        if self.num_blocks < 0:
            return DIRECTORY_GLYPH
        if self.inode_type == INodeType.HARDLINKED_INODE.value:
            return HARDLINK_GLYPH
        return REGULAR_GLYPH


def pad_column(text: str, width: int) -> str:
    """Right-justify text to width, always preceded by at least one space."""
    filler = max(0, width - len(text))
    return " " * (filler + 1) + text


def render_line(record: InodeRecord, print_hardlink_id: bool = False) -> str:
    """
    Render one inode as an ls-style line.

    Args:
        record: Completed values for the inode
        print_hardlink_id: Include the hardlink id column

    Returns:
        The formatted line, terminated by a single newline
    """
    glyph = record.glyph
    path = record.path
    if record.link_target:
        path = path + SYMLINK_ARROW + record.link_target

    parts = [glyph, record.perms]
    parts.append(pad_column("-" if record.replication == "0" else record.replication, WIDTH_REPLICATION))
    if print_hardlink_id:
        parts.append(pad_column(record.hardlink_id if glyph == HARDLINK_GLYPH else "-", WIDTH_HARDLINK_ID))
    parts.append(pad_column(record.username, WIDTH_USER))
    parts.append(pad_column(record.group, WIDTH_GROUP))
    parts.append(pad_column(str(record.filesize), WIDTH_SIZE))
    parts.append(pad_column(record.mod_time, WIDTH_MOD_TIME))
    parts.append(pad_column(path, 0))
    parts.append("\n")
    return "".join(parts)


# ---------------------------------------------------------
# Field updates for textual values
# ---------------------------------------------------------
def _set_path(record: InodeRecord, value: str) -> None:
    record.path = value if value else ROOT_PATH


def _add_bytes(record: InodeRecord, value: str) -> None:
    record.filesize += int(value)


def _store(field_name: str) -> Callable[[InodeRecord, str], None]:
    def update(record: InodeRecord, value: str) -> None:
        setattr(record, field_name, value)
    return update


_TEXT_HANDLERS: dict[ImageElement, Callable[[InodeRecord, str], None]] = {
    ImageElement.INODE_PATH: _set_path,
    ImageElement.NUM_BYTES: _add_bytes,
    ImageElement.PERMISSION_STRING: _store("perms"),
    ImageElement.REPLICATION: _store("replication"),
    ImageElement.USER_NAME: _store("username"),
    ImageElement.GROUP_NAME: _store("group"),
    ImageElement.MODIFICATION_TIME: _store("mod_time"),
    ImageElement.SYMLINK: _store("link_target"),
    ImageElement.INODE_TYPE: _store("inode_type"),
    ImageElement.INODE_HARDLINK_ID: _store("hardlink_id"),
}


class LsImageVisitor(TextWriterImageVisitor):
    """
    Rebuilds inode boundaries from the flat event stream and lists each inode.

    The scope stack tells us when an INODE scope closes; ``in_inode`` gates
    every field update so values outside an inode are ignored.
    """

    def __init__(
        self,
        filename: Optional[str],
        print_to_screen: bool = False,
        number_of_parts: int = 1,
        print_hardlink_id: bool = False,
        part_size: Optional[int] = None,
    ):
        super().__init__(filename, print_to_screen, number_of_parts, part_size)
        self.print_hardlink_id = print_hardlink_id
        self.scopes = ScopeStack()
        self.record = InodeRecord()
        self.in_inode = False
        self.lines_written = 0

    def _new_line(self) -> None:
        self.record.reset()
        self.in_inode = True

    def _print_line(self) -> None:
        self.write(render_line(self.record, self.print_hardlink_id))
        self.lines_written += 1

    def start(self) -> None:
        pass

    def finish(self) -> None:
        logger.info(f"✅ Listed {self.lines_written} inode(s)")
        super().finish()

    def finish_abnormally(self) -> None:
        # stderr, not stdout: stdout may be carrying the listing itself
        print("Input ended unexpectedly.", file=sys.stderr)
        logger.warning(f"⚠️ Input ended unexpectedly after {self.lines_written} inode(s)")
        super().finish_abnormally()

    def leave_enclosing_element(self) -> None:
        element = self.scopes.pop()
        if element is ImageElement.INODE:
            self.in_inode = False
            self._print_line()
            self.roll_if_needed()

    def visit(self, element: ImageElement, value: LeafValue) -> None:
        if isinstance(value, str):
            self._visit_text(element, value)
        else:
            self._visit_number(element, value)

    def _visit_number(self, element: ImageElement, value: int) -> None:
        if not self.in_inode:
            return
        if element is ImageElement.NUM_BYTES:
            self.record.filesize += value
        elif element is ImageElement.MODIFICATION_TIME:
            self._visit_text(element, format_date(value))
        elif element in DISCARDED_ELEMENTS:
            return
        else:
            self._visit_text(element, str(value))

    def _visit_text(self, element: ImageElement, value: str) -> None:
        if not self.in_inode:
            return
        handler = _TEXT_HANDLERS.get(element)
        # Elements without a handler are not part of the listing
        if handler is not None:
            handler(self.record, value)

    def visit_enclosing_element(
        self,
        element: ImageElement,
        key: Optional[ImageElement] = None,
        value: Optional[LeafValue] = None,
    ) -> None:
        self.scopes.push(element)
        if element is ImageElement.INODE:
            self._new_line()
        elif element is ImageElement.BLOCKS and value is not None:
            self.record.num_blocks = int(value)
