from . object_model import *
from . errors import ObjectStoreError, ObjectNotFoundError, CorruptObjectError, InvalidInputError, StorageError
from . object_store import ObjectLoader, ObjectStore
from . object_serialization import (object_to_bytes, bytes_to_object, blob_to_bytes, bytes_to_blob, tree_to_bytes, bytes_to_tree,
                                    commit_to_bytes, bytes_to_commit, is_object_id_str, is_object_id, to_object_id_str,
                                    to_object_id, get_object_id, is_blob, is_tree, is_commit, object_type_name,
                                    format_utc_offset, parse_utc_offset)
from . tree_builder import TreeBuilder, ObjectObserver, Node
from . commit_builder import CommitBuilder, make_commit
from . tree_helpers import load_path, load_path_sync, walk_ids, walk_ids_sync, read_tree, read_tree_sync
