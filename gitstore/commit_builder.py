import logging
from typing import Iterable
from gitstore.object_model import *
from gitstore.object_serialization import *
from gitstore.object_store import ObjectStore
from gitstore.tree_builder import ObjectObserver
from gitstore.errors import InvalidInputError

logger = logging.getLogger(__name__)

# the offset is rendered as +HHMM
_MAX_UTC_OFFSET = 99*60 + 59

class CommitBuilder:
    """Creates commit objects that point to a root tree, and stores them.

    All fields are required. The actors and timestamps are written as given; nothing is
    defaulted from the environment. With verify_tree, the tree id must resolve to a
    stored tree.
    """

    def __init__(self, store:ObjectStore, observer:ObjectObserver|None=None, verify_tree:bool=False):
        self.store = store
        self.observer = observer
        self.verify_tree = verify_tree

    async def build(
        self,
        tree_id:TreeId,
        parent_ids:Iterable[CommitId],
        author:Actor,
        authored_time:Timestamp,
        committer:Actor,
        committed_time:Timestamp,
        message:str,
        ) -> CommitId:
        commit = make_commit(tree_id, parent_ids, author, authored_time, committer, committed_time, message)
        if self.verify_tree:
            _enforce_tree(commit.tree, await self.store.get(commit.tree))
        commit_id = await self.store.put(commit)
        self._notify(commit_id, commit)
        return commit_id

    def build_sync(
        self,
        tree_id:TreeId,
        parent_ids:Iterable[CommitId],
        author:Actor,
        authored_time:Timestamp,
        committer:Actor,
        committed_time:Timestamp,
        message:str,
        ) -> CommitId:
        commit = make_commit(tree_id, parent_ids, author, authored_time, committer, committed_time, message)
        if self.verify_tree:
            _enforce_tree(commit.tree, self.store.get_sync(commit.tree))
        commit_id = self.store.put_sync(commit)
        self._notify(commit_id, commit)
        return commit_id

    def _notify(self, commit_id:CommitId, commit:Commit):
        logger.debug(f"put commit {commit_id.hex()} (tree {commit.tree.hex()})")
        if self.observer is not None:
            self.observer(commit_id, commit)

def make_commit(
    tree_id:TreeId,
    parent_ids:Iterable[CommitId],
    author:Actor,
    authored_time:Timestamp,
    committer:Actor,
    committed_time:Timestamp,
    message:str,
    ) -> Commit:
    """Validates the fields and returns the commit, without storing it."""
    try:
        tree_id = enforce_object_id(tree_id)
        parent_ids = tuple(enforce_object_id(parent_id) for parent_id in parent_ids)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Invalid commit id: {e}") from e
    if(not isinstance(message, str)):
        raise InvalidInputError(f"Commit message must be a string, but was '{type(message).__name__}'.")
    _enforce_utf8(message, "commit message")
    return Commit(
        tree_id,
        parent_ids,
        _enforce_actor(author, "author"),
        _enforce_timestamp(authored_time, "authored time"),
        _enforce_actor(committer, "committer"),
        _enforce_timestamp(committed_time, "committed time"),
        message)

def _enforce_actor(actor:Actor, role:str) -> Actor:
    if(not isinstance(actor, Actor)):
        raise InvalidInputError(f"The {role} must be an Actor, but was '{type(actor).__name__}'.")
    for field in (actor.name, actor.email):
        if(not isinstance(field, str)):
            raise InvalidInputError(f"The {role} name and email must be strings.")
        if any(c in field for c in "<>\n"):
            raise InvalidInputError(f"The {role} '{field}' must not contain '<', '>', or a newline.")
        _enforce_utf8(field, role)
    return actor

def _enforce_utf8(text:str, role:str):
    try:
        text.encode('utf-8')
    except UnicodeEncodeError as e:
        raise InvalidInputError(f"The {role} {text!r} is not encodable as UTF-8.") from e

def _enforce_timestamp(time:Timestamp, role:str) -> Timestamp:
    if(not isinstance(time, Timestamp)):
        raise InvalidInputError(f"The {role} must be a Timestamp, but was '{type(time).__name__}'.")
    #bool is an int, but not a meaningful time
    for field in time:
        if(not isinstance(field, int) or isinstance(field, bool)):
            raise InvalidInputError(f"The {role} must consist of integers, but was '{time}'.")
    if abs(time.utc_offset) > _MAX_UTC_OFFSET:
        raise InvalidInputError(f"The {role} utc offset '{time.utc_offset}' is out of range.")
    return time

def _enforce_tree(tree_id:TreeId, object:Object):
    if not is_tree(object):
        raise InvalidInputError(f"Commit tree '{tree_id.hex()}' is a {object_type_name(object)}, not a tree.")
