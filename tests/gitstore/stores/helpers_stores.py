import os
from gitstore import *

# Checks of the put/get/has contract shared by all object stores.

def get_random_object_id() -> ObjectId:
    return get_object_id(os.urandom(20))

def get_objects() -> list[Object]:
    blob = Blob(os.urandom(1024))
    blob_id = get_object_id(blob_to_bytes(blob))
    tree = Tree([
        TreeEntry(FileMode.REGULAR, "a", blob_id),
        TreeEntry(FileMode.TREE, "b", get_random_object_id()),
        TreeEntry(FileMode.REGULAR, "c", get_random_object_id())])
    tree_id = get_object_id(tree_to_bytes(tree))
    commit = Commit(
        tree_id,
        (get_random_object_id(),),
        Actor("Jane Doe", "jane@example.com"),
        Timestamp(1700000000, 0),
        Actor("Jane Doe", "jane@example.com"),
        Timestamp(1700000000, 0),
        "msg")
    return [blob, Blob(b""), tree, Tree(), commit]

async def check_read_write(object_store:ObjectStore):
    for object in get_objects():
        object_id = await object_store.put(object)
        assert object_id == get_object_id(object_to_bytes(object))
        assert await object_store.has(object_id)
        object_2 = await object_store.get(object_id)
        assert object == object_2
        assert object_to_bytes(object_2) == object_to_bytes(object)

def check_read_write_sync(object_store:ObjectStore):
    for object in get_objects():
        object_id = object_store.put_sync(object)
        assert object_id == get_object_id(object_to_bytes(object))
        assert object_store.has_sync(object_id)
        object_2 = object_store.get_sync(object_id)
        assert object == object_2
        assert object_to_bytes(object_2) == object_to_bytes(object)

def check_known_ids(object_store:ObjectStore):
    assert object_store.put_sync(Blob(b"123")).hex() == "d800886d9c86731ae5c4a62b0b77c437015e00d2"
    assert object_store.put_sync(Blob(b"789")).hex() == "be2fb0a390d694f75a1e5957254c29d7957fa3a2"
    tree_id = TreeBuilder(object_store).build_sync({"host1": "123", "host2": "789"})
    assert tree_id.hex() == "c2b1cf11f2abf788bfef75bbdf0263c84c3eb058"
    assert object_store.get_sync(tree_id).names() == ["host1", "host2"]

async def check_not_found(object_store:ObjectStore):
    missing = get_random_object_id()
    assert not object_store.has_sync(missing)
    assert not await object_store.has(missing)
    try:
        object_store.get_sync(missing)
        assert False
    except ObjectNotFoundError as e:
        assert e.object_id == missing
    try:
        await object_store.get(missing)
        assert False
    except ObjectNotFoundError as e:
        assert e.object_id == missing

def check_not_found_is_not_cached(object_store:ObjectStore):
    blob = Blob(b"later")
    blob_id = get_object_id(blob_to_bytes(blob))
    try:
        object_store.get_sync(blob_id)
        assert False
    except ObjectNotFoundError:
        pass
    object_store.put_sync(blob)
    assert object_store.get_sync(blob_id) == blob
