from typing import AsyncIterator, Iterable
from gitstore.object_model import *
from gitstore.object_store import ObjectLoader
from gitstore.object_serialization import *
from gitstore.errors import ObjectNotFoundError, CorruptObjectError

# Low-level, read-only helpers for working with stored trees.

# Note: for most functions here there is an async and a sync version.
# To maintainer: whenever you make a change, also change the sync version
# and vice versa.

#============================================================
# Internal Path Helpers
#============================================================
def _tree_path_parts(path:str) -> list[str]:
    """Returns a list of path parts, with empty parts removed"""
    if(path is None or path == ""):
        return []
    if(path[0] == "/"):
        raise ValueError(f"Path must be relative, but was '{path}'.")
    return [part for part in path.split("/") if part != ""]

def _enforce_tree(object_id:ObjectId, object:Object, context:str) -> Tree:
    if not is_tree(object):
        raise ValueError(f"{context}: '{object_id.hex()}' is a {object_type_name(object)}, not a tree.")
    return object

def _next_id(tree:Tree, tree_id:TreeId, name:str, path:str) -> ObjectId:
    entry = tree.get_entry(name)
    if entry is None:
        raise ObjectNotFoundError(tree_id, f"Tree '{tree_id.hex()}' has no entry '{name}' (path '{path}').")
    return entry.target

#============================================================
# Load Path Helpers
#============================================================
async def load_path(loader:ObjectLoader, root_id:TreeId, path:str) -> Object:
    """Returns the object at the end of the path"""
    object_id = root_id
    object = _enforce_tree(root_id, await loader.get(root_id), "root")
    for name in _tree_path_parts(path):
        tree = _enforce_tree(object_id, object, f"path '{path}'")
        object_id = _next_id(tree, object_id, name, path)
        object = await loader.get(object_id)
    return object

def load_path_sync(loader:ObjectLoader, root_id:TreeId, path:str) -> Object:
    """Returns the object at the end of the path"""
    object_id = root_id
    object = _enforce_tree(root_id, loader.get_sync(root_id), "root")
    for name in _tree_path_parts(path):
        tree = _enforce_tree(object_id, object, f"path '{path}'")
        object_id = _next_id(tree, object_id, name, path)
        object = loader.get_sync(object_id)
    return object

#============================================================
# Walk Helpers
#============================================================
def _split_entries(tree:Tree) -> tuple[dict[str, TreeId], dict[str, BlobId]]:
    trees = {}
    blobs = {}
    for entry in tree:
        if entry.mode == FileMode.TREE:
            trees[entry.name] = entry.target
        else:
            blobs[entry.name] = entry.target
    return trees, blobs

async def walk_ids(loader:ObjectLoader, root_id:TreeId) -> AsyncIterator[tuple[str, TreeId, dict[str, TreeId], dict[str, BlobId]]]:
    """Asynchonously yields a tuple of (path, tree_id, trees, blobs) for each tree in the tree hierarchy. Similar to os.walk.

    Path is the slash separated path of the current tree, "" for the root.
    Trees is a dictionary of [name:tree_id] of sub trees. Which can be edited while iterating to avoid descending into certain trees.
    Blobs is a dictionary of [name:blob_id] of blobs.
    """
    stack = [("", root_id)]
    while stack:
        path, tree_id = stack.pop()
        tree = _enforce_tree(tree_id, await loader.get(tree_id), f"path '{path}'")
        trees, blobs = _split_entries(tree)
        yield (path, tree_id, trees, blobs)
        for name, sub_tree_id in reversed(trees.items()):
            stack.append((f"{path}/{name}" if path else name, sub_tree_id))

def walk_ids_sync(loader:ObjectLoader, root_id:TreeId) -> Iterable[tuple[str, TreeId, dict[str, TreeId], dict[str, BlobId]]]:
    """Yields a tuple of (path, tree_id, trees, blobs) for each tree in the tree hierarchy. Similar to os.walk.

    See walk_ids.
    """
    stack = [("", root_id)]
    while stack:
        path, tree_id = stack.pop()
        tree = _enforce_tree(tree_id, loader.get_sync(tree_id), f"path '{path}'")
        trees, blobs = _split_entries(tree)
        yield (path, tree_id, trees, blobs)
        for name, sub_tree_id in reversed(trees.items()):
            stack.append((f"{path}/{name}" if path else name, sub_tree_id))

#============================================================
# Read Helpers
#============================================================
def _get_parent(result:dict, path:str) -> dict:
    node = result
    for name in _tree_path_parts(path):
        node = node[name]
    return node

def _enforce_blob(blob_id:BlobId, object:Object) -> Blob:
    if not is_blob(object):
        raise CorruptObjectError(f"regular entry points to a {object_type_name(object)}", blob_id)
    return object

async def read_tree(loader:ObjectLoader, root_id:TreeId) -> dict:
    """Reads a stored tree back into a nested mapping of names to bytes and sub-mappings."""
    result = {}
    async for path, _, trees, blobs in walk_ids(loader, root_id):
        node = _get_parent(result, path)
        for name, blob_id in blobs.items():
            node[name] = _enforce_blob(blob_id, await loader.get(blob_id)).data
        for name in trees:
            node[name] = {}
    return result

def read_tree_sync(loader:ObjectLoader, root_id:TreeId) -> dict:
    """Reads a stored tree back into a nested mapping of names to bytes and sub-mappings."""
    result = {}
    for path, _, trees, blobs in walk_ids_sync(loader, root_id):
        node = _get_parent(result, path)
        for name, blob_id in blobs.items():
            node[name] = _enforce_blob(blob_id, loader.get_sync(blob_id)).data
        for name in trees:
            node[name] = {}
    return result
