from .fs import Fs, FileInfo, FileType, normalize_path, is_dir, exists, read_file, write_file, read_dir
from ._fileobj import File, ReadableFile
from .cow import CopyOnWriteFs
from .union import UnionFile
from .copy import copy_to_layer
from .memfs import MemFs
from .osfs import OsFs
from .readonly import ReadOnlyFs
from .gitfs import GitTreeFs
from .exceptions import ReadOnlyFsError, CopyError, BadFileError
from ._lock import overlay_lock

__all__ = [
    "Fs", "FileInfo", "FileType", "File", "ReadableFile",
    "normalize_path", "is_dir", "exists", "read_file", "write_file", "read_dir",
    "CopyOnWriteFs", "UnionFile", "copy_to_layer",
    "MemFs", "OsFs", "ReadOnlyFs", "GitTreeFs",
    "ReadOnlyFsError", "CopyError", "BadFileError",
    "overlay_lock",
]
__version__ = "0.1.0"
