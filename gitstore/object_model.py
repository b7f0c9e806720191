from __future__ import annotations
from enum import Enum
from typing import Iterable, NamedTuple
from gitstore.errors import InvalidInputError

# Type aliases and structures that define the entire object model of the object database.
# The layout of every object follows the git object format, so ids match the ones git computes.

ObjectId = bytes #20 bytes, sha1 of the canonical bytes of the object

BlobId = ObjectId
TreeId = ObjectId
CommitId = ObjectId

class FileMode(Enum):
    REGULAR = "100644"
    TREE = "40000"

Blob = NamedTuple("Blob",
    [('data', bytes)])

TreeEntry = NamedTuple("TreeEntry",
    [('mode', FileMode),
     ('name', str),
     ('target', BlobId | TreeId)])

def tree_entry_sort_key(entry:TreeEntry) -> bytes:
    """Byte-wise sort key of a tree entry. Sub-trees sort as if their name ended with a slash."""
    name = entry.name.encode('utf-8')
    if entry.mode == FileMode.TREE:
        return name + b'/'
    return name

def validate_entry_name(name:str) -> str:
    if(not isinstance(name, str)):
        raise InvalidInputError(f"Entry name must be a string, but was '{type(name).__name__}'.")
    if(name == ""):
        raise InvalidInputError("Entry name must not be empty.")
    if("/" in name or "\x00" in name):
        raise InvalidInputError(f"Entry name must not contain a slash or NUL, but was '{name}'.")
    if(name == "." or name == ".."):
        raise InvalidInputError(f"Entry name must not be '{name}'.")
    try:
        name.encode('utf-8')
    except UnicodeEncodeError as e:
        raise InvalidInputError(f"Entry name {name!r} is not encodable as UTF-8.") from e
    return name

class Tree(tuple):
    """An immutable sequence of tree entries, always held in canonical order.

    The entries can be given in any order; the constructor sorts them, so two trees
    with the same entries are equal and serialize to the same bytes.
    Duplicate names are rejected.
    """
    __slots__ = ()

    def __new__(cls, entries:Iterable[TreeEntry]=()):
        entries = list(entries)
        for entry in entries:
            validate_entry_name(entry.name)
        entries.sort(key=tree_entry_sort_key)
        names = set()
        for entry in entries:
            if(not isinstance(entry.mode, FileMode)):
                raise InvalidInputError(f"Entry '{entry.name}' has an unknown mode '{entry.mode}'.")
            if(entry.name in names):
                raise InvalidInputError(f"Duplicate entry name '{entry.name}' in tree.")
            names.add(entry.name)
        return super().__new__(cls, entries)

    def get_entry(self, name:str) -> TreeEntry | None:
        for entry in self:
            if entry.name == name:
                return entry
        return None

    def names(self) -> list[str]:
        return [entry.name for entry in self]

    def __repr__(self) -> str:
        return f"Tree({list(self)!r})"

Actor = NamedTuple("Actor",
    [('name', str),
     ('email', str)])

Timestamp = NamedTuple("Timestamp",
    [('seconds', int), #since the unix epoch
     ('utc_offset', int)]) #in minutes, east of UTC is positive

Commit = NamedTuple("Commit",
    [('tree', TreeId),
     ('parents', tuple[CommitId, ...]),
     ('author', Actor),
     ('authored_time', Timestamp),
     ('committer', Actor),
     ('committed_time', Timestamp),
     ('message', str)])

Object = Blob | Tree | Commit
