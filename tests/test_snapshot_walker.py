"""
Unit tests for Snapshot Walker

Tests for event replay from JSON-lines exports, truncation handling and
end-to-end listing through the Ls Image Visitor.
"""

import sys
import json
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest

from core.errors import ScopeStackError
from core.image_elements import ImageElement, INodeType
from services.image_visitor import ImageVisitor
from services.ls_visitor import LsImageVisitor
from services.snapshot_walker import InodeEntry, SnapshotWalker


HEADER = {"layout_version": -41, "namespace_id": 1234, "generation_stamp": 1001, "num_inodes": 3}

ROOT_DIR = {
    "path": "",
    "modification_time": 1704067200000,
    "permissions": {"user_name": "hdfs", "group_name": "supergroup", "permission_string": "rwxr-xr-x"},
}

DATA_FILE = {
    "path": "/data/part-0000",
    "replication": 3,
    "modification_time": 1704067200000,
    "access_time": 1704067200000,
    "block_size": 134217728,
    "blocks": [
        {"block_id": 1, "num_bytes": 5, "generation_stamp": 1001},
        {"block_id": 2, "num_bytes": 7, "generation_stamp": 1001},
        {"block_id": 3, "num_bytes": 3, "generation_stamp": 1001},
    ],
    "permissions": {"user_name": "alice", "group_name": "staff", "permission_string": "rw-r--r--"},
}

HARDLINK_FILE = {
    "path": "/data/link",
    "replication": 2,
    "modification_time": 1704067200000,
    "blocks": [{"block_id": 4, "num_bytes": 100}],
    "inode_type": "HARDLINKED_INODE",
    "hardlink_id": 8,
    "permissions": {"user_name": "bob", "group_name": "staff", "permission_string": "rw-------"},
}


def write_snapshot(path: Path, header: dict, inodes: list, tail: str = "") -> Path:
    lines = [json.dumps(header)] + [json.dumps(inode) for inode in inodes]
    path.write_text("\n".join(lines) + "\n" + tail, encoding="utf-8")
    return path


class RecordingVisitor(ImageVisitor):
    """Captures every callback for inspection"""

    def __init__(self):
        self.events = []

    def start(self):
        self.events.append(("start",))

    def finish(self):
        self.events.append(("finish",))

    def finish_abnormally(self):
        self.events.append(("finish_abnormally",))

    def visit(self, element, value):
        self.events.append(("visit", element, value))

    def visit_enclosing_element(self, element, key=None, value=None):
        self.events.append(("enter", element, key, value))

    def leave_enclosing_element(self):
        self.events.append(("leave",))

    def close(self):
        self.events.append(("close",))


class TestInodeEntry:
    """Test inode line validation"""

    def test_directory_has_no_blocks(self):
        """Should treat missing blocks as a directory"""
        entry = InodeEntry.model_validate(ROOT_DIR)
        assert entry.is_directory
        assert entry.inode_type is INodeType.REGULAR_INODE

    def test_hardlink_type_parsed(self):
        """Should parse the inode type marker"""
        entry = InodeEntry.model_validate(HARDLINK_FILE)
        assert not entry.is_directory
        assert entry.inode_type is INodeType.HARDLINKED_INODE


class TestSnapshotWalkerEvents:
    """Test the event stream produced for a snapshot"""

    def test_event_order_for_file(self, tmp_path):
        """Should report a file inode in loader order"""
        header = dict(HEADER, num_inodes=1)
        snapshot = write_snapshot(tmp_path / "image.jsonl", header, [DATA_FILE])
        visitor = RecordingVisitor()

        assert SnapshotWalker(snapshot).walk(visitor) is True

        events = visitor.events
        assert events[0] == ("start",)
        assert events[1] == ("enter", ImageElement.FS_IMAGE, None, None)
        assert ("enter", ImageElement.INODES, ImageElement.NUM_INODES, 1) in events
        assert ("enter", ImageElement.BLOCKS, ImageElement.NUM_BLOCKS, 3) in events
        assert events[-1] == ("finish",)

        inode_start = events.index(("enter", ImageElement.INODE, None, None))
        assert events[inode_start + 1] == ("visit", ImageElement.INODE_PATH, "/data/part-0000")
        assert events[inode_start + 2] == ("visit", ImageElement.REPLICATION, 3)
        byte_counts = [e[2] for e in events if e[:2] == ("visit", ImageElement.NUM_BYTES)]
        assert byte_counts == [5, 7, 3]

    def test_scopes_balanced(self, tmp_path):
        """Should leave every scope it enters"""
        snapshot = write_snapshot(tmp_path / "image.jsonl", HEADER, [ROOT_DIR, DATA_FILE, HARDLINK_FILE])
        visitor = RecordingVisitor()
        SnapshotWalker(snapshot).walk(visitor)

        enters = sum(1 for e in visitor.events if e[0] == "enter")
        leaves = sum(1 for e in visitor.events if e[0] == "leave")
        assert enters == leaves

    def test_directory_block_count(self, tmp_path):
        """Should report directories with a block count of -1 and quotas"""
        snapshot = write_snapshot(tmp_path / "image.jsonl", dict(HEADER, num_inodes=1), [ROOT_DIR])
        visitor = RecordingVisitor()
        SnapshotWalker(snapshot).walk(visitor)

        assert ("enter", ImageElement.BLOCKS, ImageElement.NUM_BLOCKS, -1) in visitor.events
        assert ("visit", ImageElement.NS_QUOTA, -1) in visitor.events

    def test_missing_inodes_is_truncation(self, tmp_path):
        """Should finish abnormally when inodes are missing"""
        snapshot = write_snapshot(tmp_path / "image.jsonl", HEADER, [ROOT_DIR])
        visitor = RecordingVisitor()

        assert SnapshotWalker(snapshot).walk(visitor) is False
        assert visitor.events[-1] == ("finish_abnormally",)
        assert ("finish",) not in visitor.events

    def test_cut_line_is_truncation(self, tmp_path):
        """Should finish abnormally on a half-written inode line"""
        snapshot = write_snapshot(tmp_path / "image.jsonl", dict(HEADER, num_inodes=2), [ROOT_DIR],
                                  tail='{"path": "/data/par')
        visitor = RecordingVisitor()

        assert SnapshotWalker(snapshot).walk(visitor) is False
        assert visitor.events[-1] == ("finish_abnormally",)

    def test_invalid_utf8_is_truncation(self, tmp_path):
        """Should finish abnormally on a line that is not valid UTF-8"""
        snapshot = write_snapshot(tmp_path / "image.jsonl", dict(HEADER, num_inodes=2), [DATA_FILE])
        with open(snapshot, "ab") as stream:
            stream.write(b'{"path": "\xff\xfe"}\n')
        visitor = RecordingVisitor()

        assert SnapshotWalker(snapshot).walk(visitor) is False
        assert visitor.events[-1] == ("finish_abnormally",)
        # The valid inode before the bad line was still reported
        assert ("visit", ImageElement.INODE_PATH, "/data/part-0000") in visitor.events

    def test_empty_file_is_truncation(self, tmp_path):
        """Should finish abnormally when the header is missing"""
        snapshot = tmp_path / "image.jsonl"
        snapshot.write_text("", encoding="utf-8")
        visitor = RecordingVisitor()

        assert SnapshotWalker(snapshot).walk(visitor) is False

    def test_visitor_errors_propagate(self, tmp_path):
        """Should close without the truncation path and re-raise visitor failures"""
        snapshot = write_snapshot(tmp_path / "image.jsonl", dict(HEADER, num_inodes=1), [DATA_FILE])

        class FailingVisitor(RecordingVisitor):
            def leave_enclosing_element(self):
                raise ScopeStackError("boom")

        visitor = FailingVisitor()
        with pytest.raises(ScopeStackError):
            SnapshotWalker(snapshot).walk(visitor)
        assert visitor.events[-1] == ("close",)
        assert ("finish_abnormally",) not in visitor.events


class TestEndToEndListing:
    """Test full listings through the Ls Image Visitor"""

    def test_listing(self, tmp_path):
        """Should list every inode in file order"""
        snapshot = write_snapshot(tmp_path / "image.jsonl", HEADER, [ROOT_DIR, DATA_FILE, HARDLINK_FILE])
        output = tmp_path / "listing.txt"
        visitor = LsImageVisitor(str(output), print_hardlink_id=True)

        assert SnapshotWalker(snapshot).walk(visitor) is True

        lines = output.read_text(encoding="utf-8").splitlines()
        assert lines == [
            "drwxr-xr-x  -          -     hdfs supergroup          0 2024-01-01 00:00 /",
            "-rw-r--r--  3          -    alice      staff         15 2024-01-01 00:00 /data/part-0000",
            "hrw-------  2          8      bob      staff        100 2024-01-01 00:00 /data/link",
        ]

    def test_truncated_listing_keeps_complete_inodes(self, tmp_path, capsys):
        """Should keep lines for inodes read before the input ended"""
        snapshot = write_snapshot(tmp_path / "image.jsonl", HEADER, [DATA_FILE])
        output = tmp_path / "listing.txt"
        visitor = LsImageVisitor(str(output))

        assert SnapshotWalker(snapshot).walk(visitor) is False

        assert len(output.read_text(encoding="utf-8").splitlines()) == 1
        assert "Input ended unexpectedly." in capsys.readouterr().err

    def test_invalid_utf8_keeps_earlier_lines(self, tmp_path, capsys):
        """Should list the inodes read before an undecodable line"""
        snapshot = write_snapshot(tmp_path / "image.jsonl", dict(HEADER, num_inodes=2), [DATA_FILE])
        with open(snapshot, "ab") as stream:
            stream.write(b'{"path": "\xff\xfe"\n')
        output = tmp_path / "listing.txt"
        visitor = LsImageVisitor(str(output))

        assert SnapshotWalker(snapshot).walk(visitor) is False

        lines = output.read_text(encoding="utf-8").splitlines()
        assert [line.split()[-1] for line in lines] == ["/data/part-0000"]
        assert "Input ended unexpectedly." in capsys.readouterr().err

    def test_structural_violation_has_no_truncation_notice(self, tmp_path, capsys):
        """Should close the listing quietly when the scope stack is violated"""
        snapshot = write_snapshot(tmp_path / "image.jsonl", dict(HEADER, num_inodes=1), [DATA_FILE])
        output = tmp_path / "listing.txt"

        class UnscopedVisitor(LsImageVisitor):
            def visit_enclosing_element(self, element, key=None, value=None):
                pass

        visitor = UnscopedVisitor(str(output))
        with pytest.raises(ScopeStackError):
            SnapshotWalker(snapshot).walk(visitor)

        assert visitor.closed
        assert "Input ended unexpectedly." not in capsys.readouterr().err
        assert output.read_text(encoding="utf-8") == ""
