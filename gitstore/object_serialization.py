import hashlib
import re
import string
from gitstore.object_model import *
from gitstore.errors import CorruptObjectError, InvalidInputError

_STR_ENCODING = 'utf-8'
_HEADER_ENCODING = 'ascii'
_ID_LEN = 20
_ID_STR_LEN = 40

_OBJECT_TYPES = ('blob', 'tree', 'commit')
_MODES = {mode.value.encode(_HEADER_ENCODING): mode for mode in FileMode}

# name <email> seconds +hhmm
_ACTOR_LINE = re.compile(rb'^(.*) <([^<>\n]*)> (-?\d+) ([+-])(\d{2})(\d{2})$')

#============================================================
# Digest
#============================================================
def get_object_id(bytes:bytes | bytearray) -> ObjectId:
    return hashlib.sha1(bytes).digest()

def is_object_id_str(object_id_str:str) -> bool:
    return isinstance(object_id_str, str) and len(object_id_str) == _ID_STR_LEN and all(c in string.hexdigits for c in object_id_str)

def is_object_id(object_id:ObjectId) -> bool:
    return (isinstance(object_id, bytes) or isinstance(object_id, bytearray)) and len(object_id) == _ID_LEN

def to_object_id_str(object_id:ObjectId) -> str:
    return object_id.hex()

def to_object_id(object_id_str:str) -> ObjectId:
    if not is_object_id_str(object_id_str):
        raise ValueError(f"Expected {_ID_STR_LEN} hex characters, but got '{object_id_str}'.")
    return bytes.fromhex(object_id_str)

def enforce_object_id(object_id:ObjectId) -> ObjectId:
    if not (isinstance(object_id, bytes) or isinstance(object_id, bytearray)):
        raise TypeError(f"Expected object id of type bytes but got {type(object_id)}")
    if len(object_id) != _ID_LEN:
        raise ValueError(f"Expected object id of {_ID_LEN} bytes but got {len(object_id)}")
    return bytes(object_id)

#============================================================
# Object type checks
#============================================================
def is_blob(object:Object) -> bool:
    return isinstance(object, Blob)

def is_tree(object:Object) -> bool:
    return isinstance(object, Tree)

def is_commit(object:Object) -> bool:
    return isinstance(object, Commit)

def object_type_name(object:Object) -> str:
    if is_blob(object):
        return 'blob'
    elif is_tree(object):
        return 'tree'
    elif is_commit(object):
        return 'commit'
    else:
        raise TypeError(f"Unknown object type '{type(object).__name__}'")

#============================================================
# Object to bytes, and back
#============================================================
def object_to_bytes(object:Object) -> bytes:
    if is_blob(object):
        return blob_to_bytes(object)
    elif is_tree(object):
        return tree_to_bytes(object)
    elif is_commit(object):
        return commit_to_bytes(object)
    else:
        raise TypeError(f"Unknown object type '{type(object).__name__}'")

def bytes_to_object(bytes:bytes) -> Object:
    object_type, _ = peek_object_header(bytes)
    if object_type == 'blob':
        return bytes_to_blob(bytes)
    elif object_type == 'tree':
        return bytes_to_tree(bytes)
    else:
        return bytes_to_commit(bytes)

def _object_header_to_bytes(object_type:str, length:int) -> bytes:
    return f"{object_type} {length}\x00".encode(_HEADER_ENCODING)

def peek_object_header(bytes:bytes) -> tuple[str, int]:
    """Returns the type and the declared body length of a serialized object"""
    end = bytes.find(b'\x00')
    if end < 0:
        raise CorruptObjectError("Object header is not terminated.")
    try:
        object_type, length_str = bytes[:end].decode(_HEADER_ENCODING).split(' ')
        length = int(length_str)
    except ValueError as e:
        raise CorruptObjectError(f"Malformed object header '{bytes[:end]!r}'.") from e
    if object_type not in _OBJECT_TYPES:
        raise CorruptObjectError(f"Unknown object type '{object_type}'.")
    if length < 0 or not length_str.isdigit():
        raise CorruptObjectError(f"Malformed object length '{length_str}'.")
    return object_type, length

def _enforce_and_skip_object_header(bytes:bytes, expected_object_type:str) -> bytes:
    object_type, length = peek_object_header(bytes)
    if object_type != expected_object_type:
        raise CorruptObjectError(f"Expected {expected_object_type} but got {object_type}")
    body = bytes[bytes.find(b'\x00')+1:]
    if len(body) != length:
        raise CorruptObjectError(f"Expected object body of {length} bytes but got {len(body)}")
    return body

def _decode(bytes:bytes, what:str) -> str:
    try:
        return bytes.decode(_STR_ENCODING)
    except UnicodeDecodeError as e:
        raise CorruptObjectError(f"{what} is not valid {_STR_ENCODING}.") from e

#============================================================
# Blob
#============================================================
def blob_to_bytes(object:Blob) -> bytes:
    data = bytes(object.data)
    return _object_header_to_bytes('blob', len(data)) + data

def bytes_to_blob(bytes) -> Blob:
    data = _enforce_and_skip_object_header(bytes, 'blob')
    return Blob(data)

#============================================================
# Tree
#============================================================
def tree_to_bytes(object:Tree) -> bytes:
    if not isinstance(object, Tree):
        #normalizes the order and checks the names
        object = Tree(object)
    result = bytearray()
    for entry in object:
        result += entry.mode.value.encode(_HEADER_ENCODING)
        result += b' '
        result += entry.name.encode(_STR_ENCODING)
        result += b'\x00'
        result += enforce_object_id(entry.target)
    return _object_header_to_bytes('tree', len(result)) + bytes(result)

def bytes_to_tree(bytes) -> Tree:
    body = _enforce_and_skip_object_header(bytes, 'tree')
    entries = []
    pos = 0
    while pos < len(body):
        space = body.find(b' ', pos)
        if space < 0:
            raise CorruptObjectError(f"Tree entry at offset {pos} has no mode.")
        mode = _MODES.get(body[pos:space])
        if mode is None:
            raise CorruptObjectError(f"Tree entry at offset {pos} has an unknown mode '{body[pos:space]!r}'.")
        nul = body.find(b'\x00', space+1)
        if nul < 0:
            raise CorruptObjectError(f"Tree entry at offset {pos} has an unterminated name.")
        name = _decode(body[space+1:nul], "Tree entry name")
        target = body[nul+1:nul+1+_ID_LEN]
        if len(target) != _ID_LEN:
            raise CorruptObjectError(f"Tree entry '{name}' has a truncated id.")
        entries.append(TreeEntry(mode, name, target))
        pos = nul + 1 + _ID_LEN
    try:
        tree = Tree(entries)
    except InvalidInputError as e:
        raise CorruptObjectError(f"Malformed tree: {e}") from e
    if list(tree) != entries:
        raise CorruptObjectError("Tree entries are not in canonical order.")
    return tree

#============================================================
# Commit
#============================================================
def format_utc_offset(utc_offset:int) -> str:
    sign = '-' if utc_offset < 0 else '+'
    hours, minutes = divmod(abs(utc_offset), 60)
    return f"{sign}{hours:02d}{minutes:02d}"

def parse_utc_offset(offset:str) -> int:
    if len(offset) != 5 or offset[0] not in '+-' or not offset[1:].isdigit():
        raise ValueError(f"Malformed utc offset '{offset}', expected +HHMM or -HHMM.")
    minutes = int(offset[1:3]) * 60 + int(offset[3:5])
    return -minutes if offset[0] == '-' else minutes

def _actor_to_str(actor:Actor, time:Timestamp) -> str:
    return f"{actor.name} <{actor.email}> {time.seconds} {format_utc_offset(time.utc_offset)}"

def _bytes_to_actor(line:bytes) -> tuple[Actor, Timestamp]:
    match = _ACTOR_LINE.match(line)
    if match is None:
        raise CorruptObjectError(f"Malformed actor line '{line!r}'.")
    name, email, seconds, sign, hours, minutes = match.groups()
    utc_offset = int(hours) * 60 + int(minutes)
    if sign == b'-':
        utc_offset = -utc_offset
    return (Actor(_decode(name, "Actor name"), _decode(email, "Actor email")),
            Timestamp(int(seconds), utc_offset))

def commit_to_bytes(object:Commit) -> bytes:
    lines = [f"tree {enforce_object_id(object.tree).hex()}"]
    for parent in object.parents:
        lines.append(f"parent {enforce_object_id(parent).hex()}")
    lines.append(f"author {_actor_to_str(object.author, object.authored_time)}")
    lines.append(f"committer {_actor_to_str(object.committer, object.committed_time)}")
    text = "\n".join(lines) + "\n\n" + object.message
    result = text.encode(_STR_ENCODING)
    return _object_header_to_bytes('commit', len(result)) + result

def bytes_to_commit(bytes) -> Commit:
    body = _enforce_and_skip_object_header(bytes, 'commit')
    end_of_headers = body.find(b'\n\n')
    if end_of_headers < 0:
        raise CorruptObjectError("Commit has no message separator.")
    message = _decode(body[end_of_headers+2:], "Commit message")
    tree = None
    parents = []
    author = None
    committer = None
    for line in body[:end_of_headers].split(b'\n'):
        key, _, value = line.partition(b' ')
        if key == b'tree' and tree is None and author is None:
            tree = _hex_to_object_id(value)
        elif key == b'parent' and tree is not None and author is None:
            parents.append(_hex_to_object_id(value))
        elif key == b'author' and tree is not None and author is None:
            author = _bytes_to_actor(value)
        elif key == b'committer' and author is not None and committer is None:
            committer = _bytes_to_actor(value)
        else:
            raise CorruptObjectError(f"Unexpected commit header line '{line!r}'.")
    if tree is None or author is None or committer is None:
        raise CorruptObjectError("Commit is missing the tree, author, or committer line.")
    return Commit(
        tree,
        tuple(parents),
        author[0],
        author[1],
        committer[0],
        committer[1],
        message)

def _hex_to_object_id(value:bytes) -> ObjectId:
    # bytes.fromhex would accept upper case and whitespace
    if len(value) != _ID_STR_LEN or any(c not in b'0123456789abcdef' for c in value):
        raise CorruptObjectError(f"Malformed object id '{value!r}'.")
    return bytes.fromhex(value.decode(_HEADER_ENCODING))
