from . memory_object_store import MemoryObjectStore
__all__ = ['MemoryObjectStore']
