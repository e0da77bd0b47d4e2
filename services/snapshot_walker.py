"""
Snapshot Walker - Replays a JSON-lines snapshot export as visitor events.

The export holds one header object on the first line followed by one
inode object per line. Every inode is reported as a nested INODE scope,
in file order, exactly as a binary image loader would report it.
"""
import json
import logging
from pathlib import Path
from typing import BinaryIO, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from core.errors import TruncatedSnapshotError
from core.image_elements import ImageElement, INodeType
from services.image_visitor import ImageVisitor

logger = logging.getLogger(__name__)

DIRECTORY_BLOCK_COUNT = -1


class SnapshotHeader(BaseModel):
    """Image-level values from the first line of the export"""
    layout_version: int
    namespace_id: int
    generation_stamp: int = 0
    num_inodes: int = Field(ge=0)


class BlockEntry(BaseModel):
    block_id: int
    num_bytes: int = Field(ge=0)
    generation_stamp: int = 0


class PermissionStatus(BaseModel):
    user_name: str
    group_name: str
    permission_string: str


class InodeEntry(BaseModel):
    """One inode line. ``blocks`` is None for directories."""
    path: str
    replication: int = 0
    modification_time: int = 0
    access_time: int = 0
    block_size: int = 0
    blocks: Optional[list[BlockEntry]] = None
    ns_quota: int = -1
    ds_quota: int = -1
    symlink: Optional[str] = None
    inode_type: INodeType = INodeType.REGULAR_INODE
    hardlink_id: Optional[int] = None
    permissions: PermissionStatus

    @property
    def is_directory(self) -> bool:
        return self.blocks is None


class SnapshotWalker:
    """
    Drives an ImageVisitor over a JSON-lines snapshot export.
    The walker owns the traversal; visitors only react to events.
    """

    def __init__(self, source: Union[str, Path]):
        self.source = Path(source)

    def walk(self, visitor: ImageVisitor) -> bool:
        """
        Replay the whole snapshot into the visitor and finalize it.

        Returns:
            True if the traversal completed, False if the input ended early

        Raises:
            OSError: If the export cannot be read or output cannot be written
            ScopeStackError: If the visitor received an unbalanced scope exit
        """
        logger.info(f"📂 Walking snapshot: {self.source}")
        try:
            # Each line is decoded in _parse
            with open(self.source, "rb") as stream:
                self._walk_stream(stream, visitor)
        except TruncatedSnapshotError as e:
            logger.warning(f"Snapshot {self.source} is incomplete: {e}")
            visitor.finish_abnormally()
            return False
        except Exception:
            visitor.close()
            raise

        visitor.finish()
        return True

    def _walk_stream(self, stream: BinaryIO, visitor: ImageVisitor) -> None:
        visitor.start()
        visitor.visit_enclosing_element(ImageElement.FS_IMAGE)

        header = self._read_header(stream)
        visitor.visit(ImageElement.LAYOUT_VERSION, header.layout_version)
        visitor.visit(ImageElement.NAMESPACE_ID, header.namespace_id)
        visitor.visit(ImageElement.GENERATION_STAMP, header.generation_stamp)

        visitor.visit_enclosing_element(ImageElement.INODES, ImageElement.NUM_INODES, header.num_inodes)
        for index in range(header.num_inodes):
            line = stream.readline()
            if not line:
                raise TruncatedSnapshotError(f"expected {header.num_inodes} inodes, found {index}")
            self._visit_inode(visitor, self._parse(InodeEntry, line, f"inode {index}"))
        visitor.leave_enclosing_element()  # INODES

        visitor.leave_enclosing_element()  # FS_IMAGE

        if stream.readline():
            logger.debug("Ignoring content after the last declared inode")

    def _read_header(self, stream: BinaryIO) -> SnapshotHeader:
        line = stream.readline()
        if not line:
            raise TruncatedSnapshotError("snapshot header is missing")
        return self._parse(SnapshotHeader, line, "header")

    @staticmethod
    def _parse(model: type[BaseModel], line: bytes, what: str):
        try:
            return model.model_validate(json.loads(line.decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            raise TruncatedSnapshotError(f"unreadable {what}: {e}") from e

    def _visit_inode(self, visitor: ImageVisitor, entry: InodeEntry) -> None:
        visitor.visit_enclosing_element(ImageElement.INODE)
        visitor.visit(ImageElement.INODE_PATH, entry.path)
        visitor.visit(ImageElement.REPLICATION, entry.replication)
        visitor.visit(ImageElement.MODIFICATION_TIME, entry.modification_time)
        visitor.visit(ImageElement.ACCESS_TIME, entry.access_time)
        visitor.visit(ImageElement.BLOCK_SIZE, entry.block_size)

        if entry.is_directory:
            visitor.visit_enclosing_element(ImageElement.BLOCKS, ImageElement.NUM_BLOCKS, DIRECTORY_BLOCK_COUNT)
            visitor.leave_enclosing_element()
            visitor.visit(ImageElement.NS_QUOTA, entry.ns_quota)
            visitor.visit(ImageElement.DS_QUOTA, entry.ds_quota)
        else:
            visitor.visit_enclosing_element(ImageElement.BLOCKS, ImageElement.NUM_BLOCKS, len(entry.blocks))
            for block in entry.blocks:
                visitor.visit_enclosing_element(ImageElement.BLOCK)
                visitor.visit(ImageElement.BLOCK_ID, block.block_id)
                visitor.visit(ImageElement.NUM_BYTES, block.num_bytes)
                visitor.visit(ImageElement.GENERATION_STAMP, block.generation_stamp)
                visitor.leave_enclosing_element()
            visitor.leave_enclosing_element()

        if entry.symlink:
            visitor.visit(ImageElement.SYMLINK, entry.symlink)
        visitor.visit(ImageElement.INODE_TYPE, entry.inode_type.value)
        if entry.hardlink_id is not None:
            visitor.visit(ImageElement.INODE_HARDLINK_ID, entry.hardlink_id)

        visitor.visit_enclosing_element(ImageElement.PERMISSIONS)
        visitor.visit(ImageElement.USER_NAME, entry.permissions.user_name)
        visitor.visit(ImageElement.GROUP_NAME, entry.permissions.group_name)
        visitor.visit(ImageElement.PERMISSION_STRING, entry.permissions.permission_string)
        visitor.leave_enclosing_element()

        visitor.leave_enclosing_element()  # INODE
