import logging
import os
from dataclasses import dataclass
import tomlkit
from tomlkit import TOMLDocument
from gitstore.object_store import ObjectStore
from gitstore.stores.memory import MemoryObjectStore
from gitstore.stores.file import FileObjectStore
from gitstore.stores.lmdb import SharedEnvironment, LmdbObjectStore

logger = logging.getLogger(__name__)

# Functions to work with a store configuration file.
# Utilizes https://github.com/sdispater/tomlkit to work with TOML data.
#
# The expected toml format is:
# --------------------------
# [store]
# backend = "file" # or "lmdb" or "memory"
# path = ".gitstore" # relative to the directory of the config file
# cache_size = 1024
# --------------------------

BACKENDS = ("file", "lmdb", "memory")
DEFAULT_STORE_PATH = ".gitstore"
DEFAULT_CACHE_SIZE = 1024

@dataclass
class StoreConfig:
    backend:str = "file"
    path:str = DEFAULT_STORE_PATH
    cache_size:int = DEFAULT_CACHE_SIZE

    def validate(self) -> "StoreConfig":
        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown store backend '{self.backend}', must be one of {BACKENDS}.")
        if(not isinstance(self.path, str) or self.path == ""):
            raise ValueError("Store path must be a non-empty string.")
        if(not isinstance(self.cache_size, int) or isinstance(self.cache_size, bool) or self.cache_size < 0):
            raise ValueError(f"Store cache_size must be a non-negative integer, but was '{self.cache_size}'.")
        return self

def load_store_config(toml_file_path:str) -> StoreConfig:
    doc = _read_toml_file(toml_file_path)
    config = loads_store_config(doc)
    #paths in the file are relative to the file, not to the working directory
    if not os.path.isabs(config.path):
        config.path = os.path.join(os.path.dirname(os.path.abspath(toml_file_path)), config.path)
    return config

def loads_store_config(toml:str|TOMLDocument) -> StoreConfig:
    if(isinstance(toml, str)):
        doc = _read_toml_string(toml)
    else:
        doc = toml
    store = doc.get("store", None)
    if store is None:
        return StoreConfig()
    unknown = set(store.keys()) - {"backend", "path", "cache_size"}
    if unknown:
        raise ValueError(f"Unknown keys in [store]: {sorted(unknown)}.")
    config = StoreConfig(
        backend=str(store.get("backend", "file")),
        path=str(store.get("path", DEFAULT_STORE_PATH)),
        cache_size=_unwrap(store.get("cache_size", DEFAULT_CACHE_SIZE)))
    return config.validate()

def dumps_store_config(config:StoreConfig) -> str:
    doc = tomlkit.document()
    store = tomlkit.table()
    store.add("backend", config.backend)
    store.add("path", config.path)
    store.add("cache_size", config.cache_size)
    doc.add("store", store)
    return tomlkit.dumps(doc)

def create_object_store(config:StoreConfig) -> ObjectStore:
    config.validate()
    logger.debug(f"opening {config.backend} store at '{config.path}'")
    if config.backend == "memory":
        return MemoryObjectStore()
    elif config.backend == "file":
        return FileObjectStore(config.path, cache_size=config.cache_size)
    else:
        return LmdbObjectStore(SharedEnvironment(config.path), cache_size=config.cache_size)

def _unwrap(value):
    #tomlkit items wrap plain values
    if hasattr(value, "unwrap"):
        return value.unwrap()
    return value

def _read_toml_file(file_path) -> TOMLDocument:
    with open(file_path, 'r') as f:
        return _read_toml_string(f.read())

def _read_toml_string(toml_string:str) -> TOMLDocument:
    return tomlkit.parse(toml_string)
