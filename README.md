# posagent

Library core of a point-of-sale agent that runs next to a till. It has no external dependencies and uses only the Python standard library.

| Module | What it does |
| --- | --- |
| `posagent.cloud` | HTTP client for the cloud's `/api/pos-agent/pair`, `/heartbeat` and `/unpair` endpoints |
| `posagent.pairing` | Pair, unpair and status flows over the client and a secret store |
| `posagent.heartbeat` | Periodic heartbeat loop |
| `posagent.config` | JSON configuration: defaults, loading, validation, per-platform paths |
| `posagent.secrets` | Pairing secrets, a plaintext JSON file store and atomic writes |
| `posagent.hs256` | Minting and verifying HS256 handshake tokens |
| `posagent.escpos` | ESC/POS command bytes and a chainable `Builder` |
| `posagent.cp858` | UTF-8 → CP858 transcoding for receipt text |
| `posagent.label` | Wire shape and validation of TSPL thermal label documents |
| `posagent.printer` | Print transports: `FilePrinter` and the `new_printer` factory |

## Building a receipt

```python
from posagent.escpos import CP858, Alignment, Builder
from posagent.printer import new_printer

receipt = (
    Builder()
    .init()
    .codepage(CP858)
    .align(Alignment.CENTER)
    .bold(True)
    .text_cp858("Épicerie du Coin\n")
    .bold(False)
    .align(Alignment.LEFT)
    .text_cp858("Espèces : 256,50 DZD\n")
    .cut_partial()
    .drawer_kick()
)

printer = new_printer("file:./outbox")
printer.print("ticket-0001", bytes(receipt))
```

`bytes(builder)` returns a copy of everything appended so far, and `len(builder)` returns its length. The same commands also exist as module-level functions. They are `init`, `codepage`, `bold`, `double_size`, `double_height`, `align`, `cut_full`, `cut_partial` and `drawer_kick`, and each returns the raw bytes.

`to_cp858` works as follows:

- Printable ASCII, tab, LF and CR pass through unchanged.
- French accented letters and `€ ° « » £` map to their CP858 bytes.
- A few characters are transliterated: a non-breaking space becomes a space, `…` becomes `...`, `œ` becomes `oe` and `Œ` becomes `OE`.
- Every other character becomes `?`. A warning is logged once per distinct character.

## Printers

`new_printer(spec)` chooses a transport from the spec string:

- `file:<dir>` returns a `FilePrinter`. It creates the directory if needed and writes each job to `<dir>/<job_name>.escpos`. An empty job name is replaced by a random UUIDv4.
- An empty spec, or `file:` with no directory, raises `InvalidSpecError`.
- Any other spec names a Windows spooler queue and raises `PrinterUnavailableError`.

Every printer has a `name` (`file:<dir>` for a `FilePrinter`) and an `is_reachable()` method. For a `FilePrinter`, `is_reachable()` checks that a file can be created in its directory. Write failures raise `PrinterError`.

## Configuration

```python
from posagent import config

try:
    cfg = config.load(config.default_config_path())
except config.ConfigMissingError as exc:
    cfg = exc.config                 # the defaults; a missing file is not fatal

config.validate(cfg)                 # raises ConfigError on bad values
```

`load` starts from `defaults()` and overrides only the fields present in the file. If `printer_name` is set and `receipt_printer_name` is empty, `load` copies the first into the second.

`load` raises `ConfigMalformedError` for invalid JSON, an unknown field or a field of the wrong type. It raises `ConfigError` for other I/O failures. Every error that `load` raises carries the defaults in `.config`.

`validate` checks the following:

- `version` is not empty.
- `listen_port` is between 1 and 65535.
- `heartbeat_seconds` is greater than 0.
- `log_level` is one of `debug`, `info`, `warn`, `error`.
- No entry in `allowed_origins` is empty.
- `paper_width_mm` is 58 or 80.
- `tspl_dialect` is `standard` or `rongta`.

`default_config_path()`, `default_secrets_path()`, `default_machine_id_path()` and `default_log_path()` return paths for the current platform:

- On Windows they point under `%ProgramData%\Simsim\POSAgent`.
- Elsewhere they are `./config.json`, `./secrets.json`, `./machine_id` and `./agent.log`.

## Pairing with the cloud

```python
from posagent.cloud import Client, InvalidCodeError
from posagent.pairing import PairingService
from posagent.secrets import new_secret_store

client = Client("https://cloud.example.com", "0.1.0", 10)
store = new_secret_store("./secrets.json")
service = PairingService(client, store, "machine-placeholder", "0.1.0")

try:
    service.pair("123456")
except InvalidCodeError as exc:
    print("Pairing refused:", exc)

print(service.status())   # PairStatus(paired=..., terminal_id=..., store_id=..., paired_at=...)
```

`pair` saves the returned terminal id, token and store id, with the current UTC time as `paired_at`.

`unpair` behaves as follows:

- It raises `NoSecretsError` if the agent is not paired.
- It treats `UnauthenticatedError` as "already revoked" and clears the local secrets.
- On `NetworkError` or any other cloud error it leaves the secrets in place and re-raises. Whether to force-clear with `store.clear()` is up to the caller.

Cloud failures are subclasses of `CloudError`. Each carries `code`, `message` and `status`.

| Exception | Raised for |
| --- | --- |
| `InvalidRequestError` | `INVALID_REQUEST` |
| `InvalidCodeError` | `INVALID_CODE` |
| `UnauthenticatedError` | `UNAUTHENTICATED` |
| `ForbiddenError` | `FORBIDDEN` |
| `NotFoundError` | `NOT_FOUND` |
| `RateLimitedError` | `RATE_LIMITED` |
| `InternalError` | `INTERNAL`, unknown codes, and error responses without a JSON envelope |
| `NetworkError` | transport failures |
| `ProtocolError` | a 2xx response whose body cannot be decoded |

## Secrets

`JSONFileSecretStore(path)` implements the `SecretStore` protocol:

- `load()` returns a `Secrets` object, or raises `NoSecretsError` if the file is missing.
- `save(secrets)` writes indented JSON atomically with mode `0o600`.
- `clear()` removes the file and does nothing if it is already gone.

`write_atomic(path, data, mode)` writes through a temporary file, fsyncs it and renames it into place, creating parent directories as needed. `new_secret_store(path)` returns a `JSONFileSecretStore`.

## Heartbeats

```python
import threading
from posagent.heartbeat import HeartbeatLoop

stop = threading.Event()
loop = HeartbeatLoop(cloud=client, secrets=store, printer=printer, version="0.1.0", interval=300)
threading.Thread(target=loop.run, args=(stop,)).start()
# ... later
stop.set()
```

The first tick fires immediately. Each tick does one of the following:

- **No secrets:** it skips the cloud and waits `unpaired_recheck_interval`. That interval defaults to 60 seconds when it is not positive.
- **Secrets present:** it sends a `HeartbeatRequest` and waits `interval`.
- **The cloud answers `UnauthenticatedError`:** it clears the store.
- **Network or other cloud errors:** it logs them and tries again on the next tick.
- **The store fails to load:** it counts as paired for timing purposes.

`build_heartbeat()` reports the agent version, the OS name, the uptime in seconds and the printer status. With no printer, the status shows `configured=False`.

## Handshake tokens

```python
import time
from posagent.hs256 import Claims, mint, verify

key = b"secret"
now = int(time.time())
claims = Claims(iss="trm_example", aud="simsim-print", iat=now, exp=now + 900, scope="print")
signed = mint(claims, key)
print(verify(signed, key, now))
```

`verify` accepts `now` as a `datetime` or Unix seconds, and uses the current time when it is omitted. It returns the decoded `Claims` or raises one of three `TokenError` subclasses:

| Exception | Raised when |
| --- | --- |
| `MalformedTokenError` | The token does not have three segments, has bad base64url or JSON, or a header other than HS256/JWT. |
| `BadSignatureError` | The signature does not match. |
| `ExpiredTokenError` | `exp` is not in the future, or `exp - iat` exceeds 900 seconds. |

`verify` does not check `aud` or `iss`.

## Labels

```python
from posagent.label import InvalidLabelError, Label

label = Label.from_dict(payload)   # decoded JSON document
try:
    label.validate()
except InvalidLabelError as exc:
    print("Rejected:", exc)
```

`validate` checks the label as a whole:

- Width is 20–100 mm and height is 20–150 mm.
- Gap and offset are not negative.
- Direction is 0 or 1, density is 0–15 and speed is 1–12.
- The codepage is not negative.
- There is at least one element.

It also checks each element. Common rules:

- Coordinates are within the label, at 8 dots per mm.
- Rotation is 0, 90, 180 or 270.
- The value is not blank.

Rules for each element type:

| Element type | Rules |
| --- | --- |
| Text | needs a font and scales of 1–8 |
| Barcode | symbology `CODE128` or `EAN13`; positive height, narrow and wide; EAN-13 values must be 12 or 13 digits |
| QR code | ECC `L`/`M`/`Q`/`H`, a cell size of 1–10 and a mode |

## What this package does not do

- It does not render a `Label` to TSPL printer commands. It only models and validates labels.
- It has no Windows print-spooler transport; only `file:` printers work.
- It has no encrypted secret storage. Secrets are plaintext JSON, which is suitable for development and tests only.
- It has no local HTTP server and no command-line program. It is a library to build an agent on.

## Tests

Install the `test` extra and run `pytest` from the project root.