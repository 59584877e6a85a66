# locsvc

Parts of a location service engine, written in plain Python with no
third-party dependencies. The package is a library. It has no command-line
program.

## Modules

| Module | Purpose |
| --- | --- |
| `locsvc.clock` | Wall-clock time in microseconds and milliseconds (`system_time`, `elapsed_millis_since_boot`), and the `HH:MM:SS.uuuuuu]` log-line prefix (`timestamp_prefix`). |
| `locsvc.ctrl_msg` | Control messages exchanged with the positioning daemon. These are `CtrlMessage` and `IfRequest`, with the enums `CtrlType`, `ResponseResult`, `IfRequestType` and `IfRequestSenderId`. `encode_message` and `decode_message` convert them to and from their fixed-size wire form. |
| `locsvc.pipe` | Named-pipe (FIFO) primitives: `pipe_get`, `pipe_remove`, `pipe_write`, `pipe_read` and `pipe_unblock`. |
| `locsvc.msgqueue` | Message queues built on those pipes: `msg_get`, `msg_remove`, `msg_send`, `msg_receive`, `msg_flush` and `msg_unblock`. A send or receive that does not complete whole raises `MessageQueueError`. |
| `locsvc.thread_helper` | `ThreadHelper`, a worker thread with four stages. It runs an init stage, signals readiness to the launcher, runs a pre stage once, repeats a task stage until it is unblocked, and finally runs a post stage. |
| `locsvc.handler` | `handle_if_request` and `handle_if_release` turn interface messages into `WifiRequest` or `BitRequest` objects and pass each one to a sink callable. |
| `locsvc.dmn_conn` | `LocApiServer` listens on the queues named by a `QueuePaths`, dispatches the messages it receives, and answers senders with `data_conn`. |
| `locsvc.nmea` | NMEA 0183 position sentences. `put_checksum` appends the checksum. `generate_pos` emits `$GPGSA`, `$GPVTG`, `$GPRMC` and `$GPGGA` through an `NmeaContext`. |
| `locsvc.nmea_sv` | `generate_sv` emits `$GPGSV` and `$GLGSV` sentences from an `SvStatus` made of `SvInfo` entries. |
| `locsvc.xtra` | `XtraModule` stores `XtraCallbacks` and queues XTRA data injection and server-address requests on an engine adapter. |
| `locsvc.ni` | `NiHandler` handles network-initiated requests one at a time. It relays the user's `UserResponse`, or sends "no response" when the time runs out. |

## NMEA output

`put_checksum(sentence)` takes a sentence that starts with `$`. It returns the
sentence with `*XX\r\n` appended, where `XX` is the XOR of every character
after the `$`, written as two uppercase hex digits. It raises `ValueError` if
the `$` is missing.

```python
from locsvc.nmea import put_checksum

put_checksum("$GPGSA,A,1,,,,,,,,,,,,,,,")
```

`generate_sv(context, sv_status, extended)` treats PRNs 1–32 as GPS and 65–96
as GLONASS, and drops all other satellites. It writes at most four satellites
per sentence. If no satellite is used in the fix, it then sends the four
blank position sentences. Otherwise it caches two things on the
`NmeaContext`:

- the used-in-fix mask
- the dilution-of-precision values, when `extended` has them

`generate_pos(context, location, extended, generate_nmea)` writes the four
position sentences. It uses the cached mask and consumes it. When
`generate_nmea` is false, it sends the blank sentences instead. In both cases
it clears the cached DOP values at the end. In `$GPVTG`, the magnetic track
is reported equal to the true track.

Sentences are delivered to `NmeaContext.nmea_cb(timestamp_ms, sentence,
length)`. A sentence that would reach 200 characters raises `ValueError`.

## Daemon connection

`LocApiServer(paths=None, sink=None)` uses `QueuePaths()`, which points at
`/tmp`, unless `paths` is given. `ANDROID_QUEUE_PATHS` holds the alternative
paths under `/data/misc/gpsone_d`.

- **`launch`** starts a worker thread. That thread opens all five queues with
  mode `0660` and gives the request and response queues to the `gps` group
  when that group exists. `launch` returns once the queues are open. If they
  cannot be opened, it raises `ThreadHelperError`.
- **Each worker pass** calls `serve_once`. That method receives one message
  and passes interface requests and releases to the sink through
  `locsvc.handler`.
- **`unblock`** asks the worker to stop and sends it an unblock message, so
  that a waiting receive returns.
- **`join`** waits for the worker thread to finish. The worker closes and
  removes the queues before it exits.
- **`data_conn(sender_id, status)`** sends a response to the queue that
  belongs to that sender. Unknown senders are ignored.

The queues are POSIX FIFOs, so this part needs a POSIX system.

## Network-initiated requests

`NiHandler(adapter, mute_one_session=None, no_response_time=20,
timeout_margin=5)` works as follows.

- **`init(notify_cb)`** registers the callback that shows a notification.
- **`request(notification, pass_through)`** numbers the notification, starts
  the response timer and calls the callback. It returns `False`, and drops the
  new request, while an earlier one is still waiting.
- **`respond(notif_id, user_response)`** delivers the answer. It raises
  `ValueError` if the id does not match the outstanding request.

When the answer arrives, or the timeout runs out, the handler queues a
message on `adapter.send_msg`. When run, that message calls
`adapter.inform_ni_response`. The timeout is the notification's timeout, or
`no_response_time` if the notification has none, plus `timeout_margin`.

`reset_on_engine_restart` drops a pending request without sending anything.

## What the package does not provide

The package contains no positioning engine. The adapters passed to
`XtraModule` and `NiHandler` must be supplied by the caller, and so must the
sink passed to `LocApiServer`. The package has no command-line program and
does not talk to GNSS hardware.