import logging
from gitstore.object_model import *
from gitstore.object_serialization import *
from gitstore.object_store import ObjectStore, to_bytes_and_id, bytes_to_object_checked
from gitstore.errors import ObjectNotFoundError

logger = logging.getLogger(__name__)

class MemoryObjectStore(ObjectStore):
    #no locking needed here, because all the dict operations used here are atomic
    _store:dict[ObjectId, bytes]

    def __init__(self):
        super().__init__()
        self._store = {}

    async def put(self, object:Object) -> ObjectId:
        return self.put_sync(object)

    async def get(self, object_id:ObjectId) -> Object:
        return self.get_sync(object_id)

    async def has(self, object_id:ObjectId) -> bool:
        return self.has_sync(object_id)

    def put_sync(self, object:Object) -> ObjectId:
        bytes, object_id = to_bytes_and_id(object)
        #setdefault keeps the first write, later writes of the same content are no-ops
        if self._store.setdefault(object_id, bytes) is bytes:
            logger.debug(f"stored {object_type_name(object)} {object_id.hex()}")
        return object_id

    def get_sync(self, object_id:ObjectId) -> Object:
        object_id = enforce_object_id(object_id)
        bytes = self._store.get(object_id)
        if bytes is None:
            raise ObjectNotFoundError(object_id)
        return bytes_to_object_checked(object_id, bytes)

    def has_sync(self, object_id:ObjectId) -> bool:
        return enforce_object_id(object_id) in self._store

    def __len__(self) -> int:
        return len(self._store)
