"""
Snapshot schema vocabulary.

Names every element a walker may report while traversing a namespace
snapshot, plus the inode type markers and the canonical date format.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

from core.settings import settings

DATE_FORMAT = "%Y-%m-%d %H:%M"


class ImageElement(Enum):
    """Positions in the snapshot schema, as reported by a walker."""

    # Image header
    FS_IMAGE = "FSImage"
    IMAGE_VERSION = "ImageVersion"
    NAMESPACE_ID = "NamespaceID"
    IS_COMPRESSED = "IsCompressed"
    COMPRESS_CODEC = "CompressCodec"
    LAYOUT_VERSION = "LayoutVersion"
    NUM_INODES = "NumInodes"
    GENERATION_STAMP = "GenerationStamp"

    # Inodes
    INODES = "Inodes"
    INODE = "Inode"
    INODE_PATH = "INodePath"
    REPLICATION = "Replication"
    MODIFICATION_TIME = "ModificationTime"
    ACCESS_TIME = "AccessTime"
    BLOCK_SIZE = "BlockSize"
    NUM_BLOCKS = "NumBlocks"
    BLOCKS = "Blocks"
    BLOCK = "Block"
    BLOCK_ID = "BlockID"
    NUM_BYTES = "NumBytes"
    NS_QUOTA = "NSQuota"
    DS_QUOTA = "DSQuota"
    PERMISSIONS = "Permissions"
    SYMLINK = "Symlink"
    USER_NAME = "UserName"
    GROUP_NAME = "GroupName"
    PERMISSION_STRING = "PermString"
    INODE_TYPE = "INodeType"
    INODE_HARDLINK_ID = "INodeHardlinkID"

    # Files under construction
    NUM_INODES_UNDER_CONSTRUCTION = "NumINodesUnderConstruction"
    INODES_UNDER_CONSTRUCTION = "INodesUnderConstruction"
    INODE_UNDER_CONSTRUCTION = "INodeUnderConstruction"
    PREFERRED_BLOCK_SIZE = "PreferredBlockSize"
    CLIENT_NAME = "ClientName"
    CLIENT_MACHINE = "ClientMachine"

    # Delegation tokens
    CURRENT_DELEGATION_KEY_ID = "CurrentDelegationKeyID"
    NUM_DELEGATION_KEYS = "NumDelegationKeys"
    DELEGATION_KEYS = "DelegationKeys"
    DELEGATION_KEY = "DelegationKey"
    DELEGATION_TOKEN_SEQUENCE_NUMBER = "DelegationTokenSequenceNumber"
    DELEGATION_TOKENS = "DelegationTokens"
    DELEGATION_TOKEN_IDENTIFIER = "DelegationTokenIdentifier"


class INodeType(Enum):
    """Inode type markers as they appear in the INODE_TYPE element."""

    REGULAR_INODE = "REGULAR_INODE"
    DIRECTORY_INODE = "DIRECTORY_INODE"
    HARDLINKED_INODE = "HARDLINKED_INODE"


def format_date(millis: int, tz_name: Optional[str] = None) -> str:
    """
    Render an epoch-milliseconds timestamp as ``YYYY-MM-DD HH:MM``.

    Args:
        millis: Milliseconds since the epoch
        tz_name: IANA zone name (defaults to settings.DATE_TIMEZONE)
    """
    zone = ZoneInfo(tz_name or settings.DATE_TIMEZONE)
    moment = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    return moment.astimezone(zone).strftime(DATE_FORMAT)
