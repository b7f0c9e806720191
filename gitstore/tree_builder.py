import logging
from typing import Callable, Mapping, Union
from gitstore.object_model import *
from gitstore.object_serialization import *
from gitstore.object_store import ObjectStore
from gitstore.errors import InvalidInputError

logger = logging.getLogger(__name__)

# A node is a mapping of entry names to leaf content or to further nodes.
Content = bytes | bytearray | str
Node = Mapping[str, Union[Content, "Node"]]

# Called with the id and the object after every successful put.
ObjectObserver = Callable[[ObjectId, Object], None]

class TreeBuilder:
    """Turns a nested mapping into blobs and trees in an object store, and returns the id of the root tree.

    Leaves (bytes or str) become blobs, nested mappings become sub-trees. The entries of every
    tree are sorted before serialization, so the root id does not depend on the order in which
    the mappings enumerate their keys.

    The whole input is validated before anything is written. If a put fails, the build stops
    and the error propagates; no root id is returned for a partially stored tree.
    """

    def __init__(self, store:ObjectStore, observer:ObjectObserver|None=None):
        self.store = store
        self.observer = observer

    async def build(self, node:Node) -> TreeId:
        tree_ids:dict[int, TreeId] = {}
        tree_id = None
        for mapping in _postorder(node):
            entries = []
            for name, value in mapping.items():
                if isinstance(value, Mapping):
                    entries.append(TreeEntry(FileMode.TREE, name, tree_ids[id(value)]))
                else:
                    blob = Blob(_to_bytes(value))
                    entries.append(TreeEntry(FileMode.REGULAR, name, await self._put(blob)))
            tree_id = await self._put(Tree(entries))
            tree_ids[id(mapping)] = tree_id
        return tree_id

    def build_sync(self, node:Node) -> TreeId:
        tree_ids:dict[int, TreeId] = {}
        tree_id = None
        for mapping in _postorder(node):
            entries = []
            for name, value in mapping.items():
                if isinstance(value, Mapping):
                    entries.append(TreeEntry(FileMode.TREE, name, tree_ids[id(value)]))
                else:
                    blob = Blob(_to_bytes(value))
                    entries.append(TreeEntry(FileMode.REGULAR, name, self._put_sync(blob)))
            tree_id = self._put_sync(Tree(entries))
            tree_ids[id(mapping)] = tree_id
        return tree_id

    async def _put(self, object:Object) -> ObjectId:
        object_id = await self.store.put(object)
        self._notify(object_id, object)
        return object_id

    def _put_sync(self, object:Object) -> ObjectId:
        object_id = self.store.put_sync(object)
        self._notify(object_id, object)
        return object_id

    def _notify(self, object_id:ObjectId, object:Object):
        logger.debug(f"put {object_type_name(object)} {object_id.hex()}")
        if self.observer is not None:
            self.observer(object_id, object)

def _to_bytes(value:Content) -> bytes:
    if isinstance(value, str):
        return value.encode('utf-8')
    return bytes(value)

def _render_path(link:tuple|None) -> str:
    names = []
    while link is not None:
        link, name = link
        #names that are not valid UTF-8 are shown escaped
        names.append(str(name).encode('utf-8', 'backslashreplace').decode('utf-8'))
    return "/" + "/".join(reversed(names))

def _postorder(root:Node) -> list[Node]:
    """Validates the node hierarchy and returns its mappings children-first, with the root last.

    Uses an explicit stack, so deep nesting does not exhaust the interpreter's recursion limit.
    A mapping that appears several times is returned once. Cycles are rejected.
    """
    if not isinstance(root, Mapping):
        raise InvalidInputError(f"Root node must be a mapping, but was '{type(root).__name__}'.")
    order = []
    done = set()
    on_path = set()
    #paths are kept as (parent link, name) pairs and only rendered for errors
    stack = [(root, False, None)]
    while stack:
        node, expanded, link = stack.pop()
        if expanded:
            on_path.discard(id(node))
            done.add(id(node))
            order.append(node)
            continue
        if id(node) in done:
            continue
        if id(node) in on_path:
            raise InvalidInputError(f"Node at '{_render_path(link)}' contains itself.")
        on_path.add(id(node))
        stack.append((node, True, link))
        for name, value in node.items():
            try:
                validate_entry_name(name)
            except InvalidInputError as e:
                raise InvalidInputError(f"Invalid entry at '{_render_path((link, name))}': {e}") from e
            if isinstance(value, Mapping):
                stack.append((value, False, (link, name)))
            elif isinstance(value, str):
                try:
                    value.encode('utf-8')
                except UnicodeEncodeError as e:
                    raise InvalidInputError(f"Entry at '{_render_path((link, name))}' is not encodable as UTF-8.") from e
            elif not isinstance(value, (bytes, bytearray)):
                raise InvalidInputError(f"Entry at '{_render_path((link, name))}' must be bytes, str, or a mapping, "+
                                        f"but was '{type(value).__name__}'.")
    return order
