import os
import uuid
import asyncio
import logging
import threading
import aiofiles
from functools import lru_cache
from async_lru import alru_cache
from gitstore.object_model import *
from gitstore.object_serialization import *
from gitstore.object_store import ObjectStore, to_bytes_and_id, bytes_to_object_checked
from gitstore.errors import ObjectNotFoundError, StorageError

logger = logging.getLogger(__name__)

# payloads above this size are written asynchronously in the async code path
# writing small files asynchronously makes the overall system much slower
_ASYNC_WRITE_THRESHOLD = 100000

class FileObjectStore(ObjectStore):
    """Stores every object in its own file, under 'objects/<first 2 hex chars>/<remaining 38 hex chars>'.

    A write goes to a temporary file next to its final location and is then renamed into
    place, so an object is either fully present under its id or not present at all.
    """

    # to share the files between sync and async code, a reentrant lock is needed
    # the event loop, when executing coroutines, can re-enter, but other threads can't
    _thread_lock:threading.RLock
    # however, to coordinate the async coroutines, also a async lock is needed
    _async_lock:asyncio.Lock

    def __init__(self, store_path:str, cache_size:int=1024):
        super().__init__()
        self._thread_lock = threading.RLock()
        self._async_lock = asyncio.Lock()
        self.store_path = store_path
        self.object_path = os.path.join(store_path, 'objects')
        #ensure that the paths exists
        os.makedirs(self.object_path, exist_ok=True)
        #objects are immutable, so successful loads can be cached (failures raise and are not cached)
        if cache_size > 0:
            self._load_sync = lru_cache(maxsize=cache_size)(self._load_sync)
            self._load = alru_cache(maxsize=cache_size)(self._load)

    async def put(self, object:Object) -> ObjectId:
        bytes, object_id = to_bytes_and_id(object)
        object_path = self._to_path(object_id)
        #check if the object already exists
        # this is safe to do outside the lock, because files only appear under their final name once complete
        if os.path.exists(object_path):
            return object_id
        with self._thread_lock:
            async with self._async_lock:
                if os.path.exists(object_path):
                    return object_id
                if len(bytes) > _ASYNC_WRITE_THRESHOLD:
                    await self._write(object_path, bytes)
                else:
                    self._write_sync(object_path, bytes)
        logger.debug(f"stored {object_type_name(object)} {object_id.hex()}")
        return object_id

    def put_sync(self, object:Object) -> ObjectId:
        bytes, object_id = to_bytes_and_id(object)
        object_path = self._to_path(object_id)
        if os.path.exists(object_path):
            return object_id
        with self._thread_lock:
            if os.path.exists(object_path):
                return object_id
            self._write_sync(object_path, bytes)
        logger.debug(f"stored {object_type_name(object)} {object_id.hex()}")
        return object_id

    async def get(self, object_id:ObjectId) -> Object:
        return await self._load(enforce_object_id(object_id))

    def get_sync(self, object_id:ObjectId) -> Object:
        return self._load_sync(enforce_object_id(object_id))

    async def has(self, object_id:ObjectId) -> bool:
        return self.has_sync(object_id)

    def has_sync(self, object_id:ObjectId) -> bool:
        return os.path.exists(self._to_path(enforce_object_id(object_id)))

    async def _load(self, object_id:ObjectId) -> Object:
        object_path = self._to_path(object_id)
        try:
            async with aiofiles.open(object_path, 'rb') as f:
                bytes = await f.read()
        except FileNotFoundError as e:
            raise ObjectNotFoundError(object_id) from e
        except OSError as e:
            raise StorageError(f"Could not read object '{object_id.hex()}': {e}") from e
        return bytes_to_object_checked(object_id, bytes)

    def _load_sync(self, object_id:ObjectId) -> Object:
        object_path = self._to_path(object_id)
        try:
            with open(object_path, 'rb') as f:
                bytes = f.read()
        except FileNotFoundError as e:
            raise ObjectNotFoundError(object_id) from e
        except OSError as e:
            raise StorageError(f"Could not read object '{object_id.hex()}': {e}") from e
        return bytes_to_object_checked(object_id, bytes)

    def _write_sync(self, object_path:str, bytes:bytes):
        temp_path = self._to_temp_path(object_path)
        try:
            os.makedirs(os.path.dirname(object_path), exist_ok=True)
            with open(temp_path, 'wb') as f:
                f.write(bytes)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, object_path)
        except OSError as e:
            self._remove_temp(temp_path)
            raise StorageError(f"Could not write object to '{object_path}': {e}") from e

    async def _write(self, object_path:str, bytes:bytes):
        temp_path = self._to_temp_path(object_path)
        try:
            os.makedirs(os.path.dirname(object_path), exist_ok=True)
            async with aiofiles.open(temp_path, 'wb') as f:
                await f.write(bytes)
                await f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, object_path)
        except OSError as e:
            self._remove_temp(temp_path)
            raise StorageError(f"Could not write object to '{object_path}': {e}") from e

    @staticmethod
    def _remove_temp(temp_path:str):
        if os.path.exists(temp_path):
            os.remove(temp_path)

    @staticmethod
    def _to_temp_path(object_path:str) -> str:
        #unique per writer, so concurrent processes never write into the same temp file
        directory, name = os.path.split(object_path)
        return os.path.join(directory, f".{name}.{uuid.uuid4().hex}.tmp")

    def _to_path(self, object_id:ObjectId) -> str:
        object_id_str = object_id.hex()
        return os.path.join(self.object_path, object_id_str[:2], object_id_str[2:])
