import os
import sys
import pytest
from click.testing import CliRunner
from gitstore import *
from gitstore.cli import cli, read_directory
from gitstore.stores.file import FileObjectStore

def _invoke(tmp_path, *args, input=None):
    runner = CliRunner()
    return runner.invoke(cli, ["--store-dir", str(tmp_path / "store"), *args], input=input, catch_exceptions=False)

def _make_dir(tmp_path):
    work = tmp_path / "work"
    (work / "sub").mkdir(parents=True)
    (work / "host1").write_bytes(b"123")
    (work / "host2").write_bytes(b"789")
    (work / "sub" / "file").write_bytes(b"content")
    return work

def test_hash_object(tmp_path):
    (tmp_path / "f").write_bytes(b"123")
    result = _invoke(tmp_path, "hash-object", str(tmp_path / "f"))
    assert result.exit_code == 0
    assert result.output.strip() == "d800886d9c86731ae5c4a62b0b77c437015e00d2"
    #not written without -w
    assert not FileObjectStore(str(tmp_path / "store")).has_sync(to_object_id(result.output.strip()))

def test_hash_object_write(tmp_path):
    (tmp_path / "f").write_bytes(b"123")
    result = _invoke(tmp_path, "hash-object", "-w", str(tmp_path / "f"))
    assert result.exit_code == 0
    store = FileObjectStore(str(tmp_path / "store"))
    assert store.get_sync(to_object_id(result.output.strip())) == Blob(b"123")

def test_write_tree(tmp_path):
    work = _make_dir(tmp_path)
    result = _invoke(tmp_path, "write-tree", str(work))
    assert result.exit_code == 0
    tree_id = to_object_id(result.output.strip())
    store = FileObjectStore(str(tmp_path / "store"))
    assert read_tree_sync(store, tree_id) == {"host1": b"123", "host2": b"789", "sub": {"file": b"content"}}

def test_write_tree_known_id(tmp_path):
    work = tmp_path / "work"
    work.mkdir()
    (work / "host1").write_bytes(b"123")
    (work / "host2").write_bytes(b"789")
    result = _invoke(tmp_path, "write-tree", str(work))
    assert result.output.strip() == "c2b1cf11f2abf788bfef75bbdf0263c84c3eb058"

def test_read_directory_skips_ignored(tmp_path):
    work = _make_dir(tmp_path)
    assert read_directory(str(work), [str(work / "sub")]) == {"host1": b"123", "host2": b"789"}

def test_commit_tree_and_cat_file(tmp_path):
    work = _make_dir(tmp_path)
    tree_hex = _invoke(tmp_path, "write-tree", str(work)).output.strip()
    result = _invoke(tmp_path, "commit-tree", tree_hex, "-m", "initial\n",
                     "--author", "Jane Doe <jane@example.com>", "--date", "1700000000 +0100")
    assert result.exit_code == 0
    commit_hex = result.output.strip()

    result = _invoke(tmp_path, "cat-file", "-t", commit_hex)
    assert result.output.strip() == "commit"

    result = _invoke(tmp_path, "cat-file", commit_hex)
    assert result.output == (f"tree {tree_hex}\n"
                             "author Jane Doe <jane@example.com> 1700000000 +0100\n"
                             "committer Jane Doe <jane@example.com> 1700000000 +0100\n"
                             "\n"
                             "initial\n")

    result = _invoke(tmp_path, "commit-tree", tree_hex, "-m", "second", "-p", commit_hex,
                     "--author", "Jane Doe <jane@example.com>", "--committer", "John Roe <john@example.com>")
    assert result.exit_code == 0
    store = FileObjectStore(str(tmp_path / "store"))
    second = store.get_sync(to_object_id(result.output.strip()))
    assert second.parents == (to_object_id(commit_hex),)
    assert second.committer == Actor("John Roe", "john@example.com")

def test_cat_file_tree_and_blob(tmp_path):
    work = _make_dir(tmp_path)
    tree_hex = _invoke(tmp_path, "write-tree", str(work)).output.strip()
    result = _invoke(tmp_path, "cat-file", tree_hex)
    lines = result.output.splitlines()
    assert lines[0] == "100644 blob d800886d9c86731ae5c4a62b0b77c437015e00d2\thost1"
    assert lines[2].startswith("040000 tree ")
    assert lines[2].endswith("\tsub")
    result = _invoke(tmp_path, "cat-file", "d800886d9c86731ae5c4a62b0b77c437015e00d2")
    assert result.output == "123"

def test_cat_file_not_found(tmp_path):
    result = _invoke(tmp_path, "cat-file", "0" * 40)
    assert result.exit_code == 1
    assert "not found" in result.output

def test_commit_tree_requires_a_stored_tree(tmp_path):
    result = _invoke(tmp_path, "commit-tree", "0" * 40, "-m", "msg", "--author", "Jane <jane@example.com>")
    assert result.exit_code == 1

def test_bad_object_id(tmp_path):
    result = _invoke(tmp_path, "cat-file", "xyz")
    assert result.exit_code == 2

def test_config_file(tmp_path):
    config_path = tmp_path / "gitstore.toml"
    config_path.write_text('[store]\nbackend = "lmdb"\npath = "db"\n')
    (tmp_path / "f").write_bytes(b"123")
    result = CliRunner().invoke(cli, ["-c", str(config_path), "hash-object", "-w", str(tmp_path / "f")], catch_exceptions=False)
    assert result.exit_code == 0
    assert os.path.isdir(tmp_path / "db")

@pytest.mark.skipif(sys.platform != "linux", reason="needs a file system that accepts non UTF-8 names")
def test_write_tree_rejects_undecodable_names(tmp_path):
    work = _make_dir(tmp_path)
    with open(os.path.join(os.fsencode(str(work)), b"bad\xff"), 'wb') as f:
        f.write(b"x")
    result = _invoke(tmp_path, "write-tree", str(work))
    assert result.exit_code == 1
    #nothing was written
    assert FileObjectStore(str(tmp_path / "store")).has_sync(to_object_id("d800886d9c86731ae5c4a62b0b77c437015e00d2")) is False
    assert [files for _, _, files in os.walk(tmp_path / "store" / "objects") if files] == []
