# mediahub

Building blocks for a media hub application. The package uses only the standard library.

## Modules

- `mediahub.settings`: `Settings` is a map of named options. Each option has a default and a doc string.
  - `load_config_file()` reads values from an INI file.
  - `parse_arguments()` overrides values from arguments of the form `--name=value`, `-name=value`, `--name value` or `-name value`.
  - `save()` writes the options back to the loaded file.
  - A value such as `1280x720` becomes a `Rect`, and `true` or `false` become booleans.
  - `add_listener()` registers a callback that is called every time a value is set.
- `mediahub.refcountcache`: `RefCountCache(factory)` is a thread-safe cache. `ref(key)` returns one shared object per key and creates it with `factory(key)` on first use. `unref(key)` drops one reference, and the object is discarded when its last reference goes.
- `mediahub.scopedtransaction`: `ScopedTransaction` is a context manager around one `sqlite3` transaction.
  - `execute()` runs a single statement.
  - `execute_file()` runs a script whose statements are separated by `;` and a blank line.
  - The first failure rolls the transaction back and raises `TransactionError`. Every later statement is then refused.
- `mediahub.metrics`: `read_proc_stat()` and `thread_count()` read `/proc/<pid>/stat`. `parse_swaplog_fps()` and `swaplog_fps()` read the `apfs_64:` frame rate from a swap log.
- `mediahub.rpcconnection`: `RpcConnection` speaks JSON-RPC 2.0 over TCP, and each message carries a 4-byte big-endian length prefix.
  - Register objects under names with `register_object()`. A call named `object.method` is then dispatched to that object.
  - The connection works in `Mode.SERVER` (`listen()`) or `Mode.CLIENT` (`connect_to_host()`).
  - `feed()` and `handle_message()` let you drive the protocol without sockets.
  - `encode_message()` and `decode_messages()` handle the framing.
- `mediahub.mediaplayerrpc`: `MediaPlayerRpc` takes remote player commands (`stop`, `pause`, `play_remote_source`, …) and passes them on to callbacks attached with `connect()`.
- `mediahub.pushqml`: `PushQml` registers itself as `pushqml` on an `RpcConnection`. It emits `refreshed` when `refresh` is called. Setting its `port` starts listening on that port.
- `mediahub.skin`: `Skin` and `create_skin()` cover a skin directory that holds `skin.manifest`.
  - `parse_manifest()` reads the version, resolutions, screenshot, website and option declarations.
  - `url_for_resolution()` picks the entry file for a screen size.
- `mediahub.skinmanager`: `SkinManager` finds the skins in a list of directories. If two directories hold a skin of the same name, the later directory wins.
- `mediahub.servicebrowser`: two models of remote hubs.
  - `StaticServiceBrowserModel` keeps a hand-edited list in `<data_path>/services.conf`.
  - `SimpleServiceBrowserModel` builds and interprets `Ping:`/`Pong:` discovery datagrams.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Examples

```python
from mediahub.settings import Settings

settings = Settings()
settings.add_option_entry("fullscreen", "false", "Start in full screen")
settings.add_option_entry("resolution", "1280x720", "Preferred skin resolution")
settings.parse_arguments(["--fullscreen=true", "-resolution", "1920x1080"])

settings.is_enabled("fullscreen")   # True
settings.value("resolution")        # Rect(x=0, y=0, width=1920, height=1080)
```

```python
from mediahub.skinmanager import SkinManager

manager = SkinManager(["/usr/local/share/mediahub/skins"])
for name, skin in manager.skins().items():
    print(name, skin.path)
```

```python
from mediahub.mediaplayerrpc import MediaPlayerRpc
from mediahub.rpcconnection import Mode, RpcConnection, decode_messages, encode_message

server = RpcConnection(Mode.SERVER)
player = MediaPlayerRpc()
player.connect("pause_requested", lambda: print("pause"))
server.register_object("qmhmediaplayer", player)

reply = server.feed(encode_message(
    {"jsonrpc": "2.0", "method": "qmhmediaplayer.pause", "params": [], "id": 1}
))
messages, _ = decode_messages(reply)   # one response with "result": null
```

## What it does not do

- There is no command-line program and no user interface. Skins are found and described, but nothing renders them.
- Media is not played. `MediaPlayerRpc` only passes requests on to your callbacks.
- `SimpleServiceBrowserModel` does not open sockets. Sending and receiving the datagrams on `DISCOVERY_PORT` is up to the caller.