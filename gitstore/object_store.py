from abc import ABC, abstractmethod
from gitstore.object_model import *
from gitstore.object_serialization import *
from gitstore.errors import CorruptObjectError

class ObjectLoader(ABC):
    """Interface for loading objects from the object database.

    Loading an id that was never stored raises ObjectNotFoundError. Stored bytes that
    do not parse, or that do not hash to the requested id, raise CorruptObjectError.
    """
    @abstractmethod
    async def get(self, object_id:ObjectId) -> Object:
        pass

    @abstractmethod
    def get_sync(self, object_id:ObjectId) -> Object:
        pass

    @abstractmethod
    async def has(self, object_id:ObjectId) -> bool:
        pass

    @abstractmethod
    def has_sync(self, object_id:ObjectId) -> bool:
        pass

class ObjectStore(ObjectLoader, ABC):
    """Interface for persisting objects in the object database.

    Objects are write-once: putting an object that is already present is a no-op
    that returns the same id.
    """
    @abstractmethod
    async def put(self, object:Object) -> ObjectId:
        pass

    @abstractmethod
    def put_sync(self, object:Object) -> ObjectId:
        pass

    def close(self) -> None:
        pass

def to_bytes_and_id(object:Object) -> tuple[bytes, ObjectId]:
    if(object is None):
        raise ValueError("object must not be None.")
    bytes = object_to_bytes(object)
    return bytes, get_object_id(bytes)

def bytes_to_object_checked(object_id:ObjectId, bytes:bytes) -> Object:
    """Parses stored bytes, after checking that they still hash to their id."""
    if get_object_id(bytes) != object_id:
        raise CorruptObjectError("Stored bytes do not match the object id.", object_id)
    try:
        return bytes_to_object(bytes)
    except CorruptObjectError as e:
        raise CorruptObjectError(str(e), object_id) from e
