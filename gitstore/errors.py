# Errors raised by the object database.
# Ids are typed as plain bytes here, object_model imports this module.

class ObjectStoreError(Exception):
    pass

class ObjectNotFoundError(ObjectStoreError, KeyError):
    object_id:bytes

    def __init__(self, object_id:bytes, message:str|None=None):
        self.object_id = object_id
        super().__init__(message or f"Object '{object_id.hex()}' not found.")

    def __str__(self) -> str:
        #KeyError would otherwise repr() the message
        return str(self.args[0])

class CorruptObjectError(ObjectStoreError):
    object_id:bytes | None = None

    def __init__(self, message:str, object_id:bytes|None=None):
        self.object_id = object_id
        if(object_id is not None):
            message = f"Object '{object_id.hex()}': {message}"
        super().__init__(message)

class InvalidInputError(ObjectStoreError, ValueError):
    pass

class StorageError(ObjectStoreError):
    pass
