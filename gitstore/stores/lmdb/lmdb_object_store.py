import logging
from functools import lru_cache
from gitstore.object_model import *
from gitstore.object_serialization import *
from gitstore.object_store import ObjectStore, to_bytes_and_id, bytes_to_object_checked
from gitstore.errors import ObjectNotFoundError, StorageError
import lmdb
from . shared_env import SharedEnvironment

logger = logging.getLogger(__name__)

_MAX_RESIZES = 5

class LmdbObjectStore(ObjectStore):
    """Stores objects in the 'obj' database of an LMDB environment, keyed by the raw 20 byte id.

    LMDB transactions are atomic, so a crashed write never leaves a partial object behind.
    """
    def __init__(self, shared_env:SharedEnvironment, cache_size:int=1024*10):
        super().__init__()
        if(not isinstance(shared_env, SharedEnvironment)):
            raise TypeError(f"shared_env must be of type SharedEnvironment, not '{type(shared_env)}'.")
        self._shared_env = shared_env
        if cache_size > 0:
            self._load_sync = lru_cache(maxsize=cache_size)(self._load_sync)

    async def put(self, object:Object) -> ObjectId:
        return self.put_sync(object)

    async def get(self, object_id:ObjectId) -> Object:
        return self.get_sync(object_id)

    async def has(self, object_id:ObjectId) -> bool:
        return self.has_sync(object_id)

    def put_sync(self, object:Object) -> ObjectId:
        bytes, object_id = to_bytes_and_id(object)
        for attempt in range(_MAX_RESIZES + 1):
            try:
                added = self._put_bytes(object_id, bytes)
                break
            except lmdb.MapFullError as e:
                if attempt == _MAX_RESIZES:
                    raise StorageError(f"LMDB map is still full after {_MAX_RESIZES} resizes (obj id: {object_id.hex()})") from e
                logger.warning(f"===> Resizing LMDB map... in obj store, (obj id: {object_id.hex()}) <===")
                self._shared_env._resize()
        if added:
            logger.debug(f"stored {object_type_name(object)} {object_id.hex()}")
        return object_id

    def _put_bytes(self, object_id:ObjectId, bytes:bytes) -> bool:
        try:
            with self._shared_env.begin_object_txn() as txn:
                #returns False, and leaves the value untouched, if the key exists
                return txn.put(object_id, bytes, overwrite=False)
        except lmdb.MapFullError:
            raise
        except lmdb.Error as e:
            raise StorageError(f"Could not write object '{object_id.hex()}': {e}") from e

    def get_sync(self, object_id:ObjectId) -> Object:
        return self._load_sync(enforce_object_id(object_id))

    def _load_sync(self, object_id:ObjectId) -> Object:
        try:
            with self._shared_env.begin_object_txn(write=False) as txn:
                bytes = txn.get(object_id, default=None)
        except lmdb.Error as e:
            raise StorageError(f"Could not read object '{object_id.hex()}': {e}") from e
        if bytes is None:
            raise ObjectNotFoundError(object_id)
        return bytes_to_object_checked(object_id, bytes)

    def has_sync(self, object_id:ObjectId) -> bool:
        object_id = enforce_object_id(object_id)
        try:
            with self._shared_env.begin_object_txn(write=False) as txn:
                return txn.get(object_id, default=None) is not None
        except lmdb.Error as e:
            raise StorageError(f"Could not read object '{object_id.hex()}': {e}") from e

    def count(self) -> int:
        with self._shared_env.begin_object_txn(write=False) as txn:
            return txn.stat(self._shared_env.get_object_db())['entries']

    def close(self) -> None:
        self._shared_env.close()
