import logging
import os
import re
import time
import click
from dataclasses import dataclass
from gitstore import *
from gitstore.store_config import StoreConfig, load_store_config, create_object_store, BACKENDS

# Command line to work with an object database.
# It utilizes the 'click' library.

_ACTOR = re.compile(r'^(.*?)\s*<([^<>\n]*)>$')
_DATE = re.compile(r'^(-?\d+)(?:\s+([+-]\d{4}))?$')

@dataclass
class CliContext:
    verbose:bool
    config:StoreConfig
    _store:ObjectStore|None = None

    def get_store(self) -> ObjectStore:
        if self._store is None:
            self._store = create_object_store(self.config)
        return self._store

    def observer(self) -> ObjectObserver|None:
        if not self.verbose:
            return None
        def _print(object_id:ObjectId, object:Object):
            click.echo(f"{object_type_name(object)} {object_id.hex()}", err=True)
        return _print

@click.group()
@click.pass_context
@click.option("--config", "-c", "config_path", help="Store config file (TOML). Defaults to 'gitstore.toml' in the current directory, if it exists.")
@click.option("--store-dir", "-d", help="Directory of the store. Overrides the config file.")
@click.option("--backend", "-b", type=click.Choice(BACKENDS), help="Store backend. Overrides the config file.")
@click.option("--verbose", "-v", is_flag=True, help="Will print verbose messages.")
def cli(ctx:click.Context, config_path:str|None, store_dir:str|None, backend:str|None, verbose:bool):
    #print logs to console
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)
    if(config_path is None and os.path.exists("gitstore.toml")):
        config_path = "gitstore.toml"
    try:
        config = load_store_config(config_path) if config_path is not None else StoreConfig()
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Could not load config '{config_path}': {e}") from e
    if(store_dir is not None):
        config.path = store_dir
    if(backend is not None):
        config.backend = backend
    if(verbose):
        click.echo(f" store: {config.backend} at {os.path.abspath(config.path)}", err=True)
    ctx.obj = CliContext(verbose=verbose, config=config)
    ctx.call_on_close(lambda: ctx.obj._store.close() if ctx.obj._store is not None else None)

#===========================================================
# 'hash-object' command
#===========================================================
@cli.command("hash-object")
@click.pass_context
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--write", "-w", is_flag=True, help="Also write the blob into the store.")
def hash_object(ctx:click.Context, file:str, write:bool):
    with open(file, 'rb') as f:
        blob = Blob(f.read())
    if write:
        object_id = _run(lambda: ctx.obj.get_store().put_sync(blob))
    else:
        object_id = get_object_id(blob_to_bytes(blob))
    click.echo(object_id.hex())

#===========================================================
# 'write-tree' command
#===========================================================
@cli.command("write-tree")
@click.pass_context
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
def write_tree(ctx:click.Context, directory:str):
    cli_ctx:CliContext = ctx.obj
    ignore = [os.path.abspath(cli_ctx.config.path)]
    node = _run(lambda: read_directory(directory, ignore))
    builder = TreeBuilder(cli_ctx.get_store(), observer=cli_ctx.observer())
    tree_id = _run(lambda: builder.build_sync(node))
    click.echo(tree_id.hex())

#===========================================================
# 'commit-tree' command
#===========================================================
@cli.command("commit-tree")
@click.pass_context
@click.argument("tree")
@click.option("--message", "-m", required=True, help="Commit message.")
@click.option("--parent", "-p", "parents", multiple=True, help="Parent commit id, can be given several times.")
@click.option("--author", required=True, help="Author as 'Name <email>'.")
@click.option("--committer", help="Committer as 'Name <email>'. Defaults to the author.")
@click.option("--date", help="Time as 'SECONDS [+-HHMM]'. Defaults to now, in the local timezone.")
def commit_tree(ctx:click.Context, tree:str, message:str, parents:tuple[str], author:str, committer:str|None, date:str|None):
    cli_ctx:CliContext = ctx.obj
    tree_id = _parse_id(tree)
    parent_ids = [_parse_id(p) for p in parents]
    author_actor = _parse_actor(author)
    committer_actor = _parse_actor(committer) if committer is not None else author_actor
    timestamp = _parse_date(date) if date is not None else _now()
    builder = CommitBuilder(cli_ctx.get_store(), observer=cli_ctx.observer(), verify_tree=True)
    commit_id = _run(lambda: builder.build_sync(
        tree_id, parent_ids, author_actor, timestamp, committer_actor, timestamp, message))
    click.echo(commit_id.hex())

#===========================================================
# 'cat-file' command
#===========================================================
@cli.command("cat-file")
@click.pass_context
@click.argument("object_id")
@click.option("--type", "-t", "show_type", is_flag=True, help="Only print the type of the object.")
def cat_file(ctx:click.Context, object_id:str, show_type:bool):
    object = _run(lambda: ctx.obj.get_store().get_sync(_parse_id(object_id)))
    if show_type:
        click.echo(object_type_name(object))
    elif is_blob(object):
        click.echo(object.data, nl=False)
    elif is_tree(object):
        for entry in object:
            kind = "tree" if entry.mode == FileMode.TREE else "blob"
            click.echo(f"{entry.mode.value:0>6} {kind} {entry.target.hex()}\t{entry.name}")
    else:
        #the body of a commit is its text form
        body = commit_to_bytes(object)
        click.echo(body[body.find(b'\x00')+1:].decode('utf-8'), nl=False)

#===========================================================
# Helpers
#===========================================================
def read_directory(dir_path:str, ignore:list[str]|None=None) -> dict:
    """Reads a directory into a nested mapping of names to file bytes and sub-mappings."""
    ignore = set(ignore or [])
    root = {}
    for current, dir_names, file_names in os.walk(dir_path):
        relative = os.path.relpath(current, dir_path)
        node = root
        if relative != ".":
            for part in relative.split(os.sep):
                node = node[part]
        dir_names[:] = [d for d in sorted(dir_names) if os.path.abspath(os.path.join(current, d)) not in ignore]
        for dir_name in dir_names:
            node[dir_name] = {}
        for file_name in file_names:
            file_path = os.path.join(current, file_name)
            if os.path.islink(file_path) or not os.path.isfile(file_path):
                continue
            with open(file_path, 'rb') as f:
                node[file_name] = f.read()
    return root

def _run(func):
    try:
        return func()
    except ObjectStoreError as e:
        raise click.ClickException(str(e)) from e
    except OSError as e:
        raise click.ClickException(f"I/O error: {e}") from e

def _parse_id(object_id_str:str) -> ObjectId:
    if not is_object_id_str(object_id_str):
        raise click.BadParameter(f"'{object_id_str}' is not a 40 character hex object id.")
    return to_object_id(object_id_str.lower())

def _parse_actor(actor:str) -> Actor:
    match = _ACTOR.match(actor.strip())
    if match is None:
        raise click.BadParameter(f"'{actor}' must be of the form 'Name <email>'.")
    return Actor(match.group(1), match.group(2))

def _parse_date(date:str) -> Timestamp:
    match = _DATE.match(date.strip())
    if match is None:
        raise click.BadParameter(f"'{date}' must be of the form 'SECONDS [+-HHMM]'.")
    offset = parse_utc_offset(match.group(2)) if match.group(2) else 0
    return Timestamp(int(match.group(1)), offset)

def _now() -> Timestamp:
    now = time.time()
    return Timestamp(int(now), time.localtime(now).tm_gmtoff // 60)

if __name__ == '__main__':
    cli()
