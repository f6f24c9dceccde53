# countinggame

A counting game for a classroom of networked computers. Every student runs
a small program and the group counts upward together: the student whose id
equals `count % total_students` sends the next count. There are two versions
of the game, one with a central TCP server and one over UDP multicast, plus
a small multicast chat for warming up.

## Installation

```
pip install .
```

The package needs nothing beyond the Python standard library (Python 3.10
or later).

## TCP game: one server, many clients

The presenter starts the server on TCP port 35701 and tells it how many
students take part:

```
counting-tcp-server 13
```

The server accepts up to three connections per student and passes every
count it receives on to all connected clients. Each count is shown together
with the student who made it. When counting gets fast (more than 0.05 counts
per millisecond), the display turns into a single updating line with the
rate in counts per millisecond, refreshed at most every half second.

If clients are connected and no count arrives for five seconds, the server
says the missing count itself and marks it `[timeout]`. If nobody has
connected after thirty seconds, the server starts counting on its own in the
same way.

Each student connects with their id (from 0 to total-1), the total, and
optionally the server's host name or IP address:

```
counting-tcp-client 0 13 192.0.2.10
```

The address is resolved for both IPv4 and IPv6, and the first address that
accepts the connection is used. Student 0 starts the game by sending `0`.
Counts travel as decimal numbers, one per line. Clients print the counts up
to twenty and then stay quiet.

## UDP game: peers on a multicast group

There is no server in this version. Every peer joins the multicast group
239.255.1.1 on port 36702:

```
counting-udp-peer 3 13
```

Student 0 starts the count and, if the group has been quiet for eight
seconds, starts again from 0. Each count is sent as a single datagram
holding the number. When the network buffer is full a send is retried once
after a short pause.

The presenter listens on the same group and shows the progress in the same
way as the TCP server. When no count arrives for five seconds it reports
which count and which student it is waiting for:

```
counting-udp-presenter 13
```

## Multicast chat

`multicast-chat` joins the same group. Every non-empty line you type is sent
to the group, and every message received, your own included, is printed with
`[received]` in front of it:

```
multicast-chat
```

Stop any of the programs with Ctrl-C. Each command is also available as a
module, for example `python -m countinggame.tcp_server 13`.

## Using the package from Python

- `countinggame.protocol` holds the wire helpers: `LineBuffer` splits
  received chunks into lines, `parse_count` reads a leading 32-bit decimal
  number (raising `ValueError` otherwise), `is_turn` and `validate_student`
  check student ids, and `open_multicast_socket` / `leave_multicast` manage
  group membership.
- `countinggame.progress.ProgressMonitor` tracks count rates and produces
  the progress text.
- `TCPCountingServer`, `TCPCountingClient`, `UDPCountingPeer`,
  `UDPCountingPresenter` and `MulticastChat` are the programs themselves.
  They close their sockets when used as context managers, and the server,
  presenter and peer take a `clock` callable so that their `tick` timeout
  checks can be driven with chosen times.

## What it does not do

The TCP server listens on IPv4 only, and the multicast programs use IPv4
multicast only. There is no authentication, no score keeping and nothing is
stored between runs.

## Running the tests

```
pip install .[test]
pytest
```