import random
import pytest
from gitstore import *
from gitstore.stores.memory import MemoryObjectStore

class FailingObjectStore(MemoryObjectStore):
    """Fails after a number of successful puts."""
    def __init__(self, fail_after:int):
        super().__init__()
        self.fail_after = fail_after

    def put_sync(self, object:Object) -> ObjectId:
        if self.fail_after == 0:
            raise StorageError("disk full")
        self.fail_after -= 1
        return super().put_sync(object)

def _shuffled(node:dict, rnd:random.Random) -> dict:
    items = list(node.items())
    rnd.shuffle(items)
    return {k: _shuffled(v, rnd) if isinstance(v, dict) else v for k, v in items}

def test_build_known_id():
    store = MemoryObjectStore()
    tree_id = TreeBuilder(store).build_sync({"host1": "123", "host2": "789"})
    assert tree_id.hex() == "c2b1cf11f2abf788bfef75bbdf0263c84c3eb058"
    #the blobs are stored as well
    assert store.get_sync(to_object_id("d800886d9c86731ae5c4a62b0b77c437015e00d2")) == Blob(b"123")
    assert store.get_sync(to_object_id("be2fb0a390d694f75a1e5957254c29d7957fa3a2")) == Blob(b"789")

async def test_build_known_id_async():
    store = MemoryObjectStore()
    tree_id = await TreeBuilder(store).build({"host2": b"789", "host1": b"123"})
    assert tree_id.hex() == "c2b1cf11f2abf788bfef75bbdf0263c84c3eb058"

def test_build_matches_manual_construction():
    store = MemoryObjectStore()
    tree_id = TreeBuilder(store).build_sync({"etc": {"hosts": "127.0.0.1 localhost\n"}, "README": "hi"})

    manual = MemoryObjectStore()
    hosts_id = manual.put_sync(Blob(b"127.0.0.1 localhost\n"))
    etc_id = manual.put_sync(Tree([TreeEntry(FileMode.REGULAR, "hosts", hosts_id)]))
    readme_id = manual.put_sync(Blob(b"hi"))
    root_id = manual.put_sync(Tree([
        TreeEntry(FileMode.REGULAR, "README", readme_id),
        TreeEntry(FileMode.TREE, "etc", etc_id)]))
    assert tree_id == root_id
    assert len(store) == len(manual) == 4

def test_build_is_independent_of_key_order():
    node = {
        "a": "1",
        "a.b": "2",
        "a0": {"x": "3", "y": {"z": "4"}},
        "b": {},
        "c": {"a": "1", "b": {"a": "1"}},
        }
    node["a_dir"] = {"a": node["a"]}
    expected = TreeBuilder(MemoryObjectStore()).build_sync(node)
    rnd = random.Random(42)
    for _ in range(20):
        assert TreeBuilder(MemoryObjectStore()).build_sync(_shuffled(node, rnd)) == expected

def test_build_empty_mapping():
    store = MemoryObjectStore()
    tree_id = TreeBuilder(store).build_sync({})
    assert tree_id.hex() == "4b825dc642cb6eb9a060e54bf8d69288fbee4904"
    assert store.get_sync(tree_id) == Tree()

def test_build_empty_sub_mapping():
    store = MemoryObjectStore()
    tree_id = TreeBuilder(store).build_sync({"empty": {}})
    tree = store.get_sync(tree_id)
    assert tree == Tree([TreeEntry(FileMode.TREE, "empty", to_object_id("4b825dc642cb6eb9a060e54bf8d69288fbee4904"))])

def test_build_deduplicates_identical_content():
    store = MemoryObjectStore()
    TreeBuilder(store).build_sync({
        "a": {"x": "same"},
        "b": {"x": "same"},
        "c": "same",
        })
    #one blob, one sub-tree, one root
    assert len(store) == 3

def test_build_shared_mapping():
    shared = {"x": "1"}
    store = MemoryObjectStore()
    tree_id = TreeBuilder(store).build_sync({"a": shared, "b": {"c": shared}})
    assert tree_id == TreeBuilder(MemoryObjectStore()).build_sync({"a": {"x": "1"}, "b": {"c": {"x": "1"}}})

def test_build_deep_nesting():
    node = {"leaf": "value"}
    for i in range(5000):
        node = {f"level{i}": node}
    store = MemoryObjectStore()
    tree_id = TreeBuilder(store).build_sync(node)
    assert store.has_sync(tree_id)
    #5000 wrapping trees, the innermost tree and its blob
    assert len(store) == 5002

def test_build_observer_sees_every_put():
    seen = []
    store = MemoryObjectStore()
    tree_id = TreeBuilder(store, observer=lambda object_id, object: seen.append((object_id, object))).build_sync(
        {"a": "1", "sub": {"b": "2"}})
    assert len(seen) == 4
    #children are put before their parents, the root is last
    assert seen[-1][0] == tree_id
    assert is_tree(seen[-1][1])
    for object_id, object in seen:
        assert get_object_id(object_to_bytes(object)) == object_id

@pytest.mark.parametrize("node", [
    {"": "1"},
    {"a/b": "1"},
    {"sub": {"a/b": "1"}},
    {"..": "1"},
    {"a": 1},
    {"a": None},
    {"a": ["x"]},
    {1: "x"},
    {"bad\udcff": "x"},
    {"a": "bad\udcff"},
    {"sub": {"bad\udcff": {}}},
    ])
def test_build_rejects_invalid_input_before_writing(node):
    store = MemoryObjectStore()
    node = {"first": "written before the bad entry", **node}
    with pytest.raises(InvalidInputError):
        TreeBuilder(store).build_sync(node)
    assert len(store) == 0

def test_build_rejects_non_mapping_root():
    with pytest.raises(InvalidInputError):
        TreeBuilder(MemoryObjectStore()).build_sync("not a mapping")

def test_build_rejects_cycles():
    node = {"a": {}}
    node["a"]["self"] = node
    store = MemoryObjectStore()
    with pytest.raises(InvalidInputError):
        TreeBuilder(store).build_sync(node)
    assert len(store) == 0

def test_build_stops_on_first_storage_failure():
    store = FailingObjectStore(fail_after=2)
    with pytest.raises(StorageError):
        TreeBuilder(store).build_sync({"a": "1", "b": "2", "c": "3"})
    assert len(store) == 2

async def test_build_stops_on_first_storage_failure_async():
    store = FailingObjectStore(fail_after=0)
    with pytest.raises(StorageError):
        await TreeBuilder(store).build({"a": "1"})
    assert len(store) == 0

def test_build_str_and_bytes_leaves_are_equal():
    assert (TreeBuilder(MemoryObjectStore()).build_sync({"a": "grüße"}) ==
            TreeBuilder(MemoryObjectStore()).build_sync({"a": "grüße".encode("utf-8")}))
