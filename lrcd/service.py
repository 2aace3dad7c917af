from __future__ import annotations

import logging
import selectors
import signal
import socket
import threading
import time

from .config import ServerConfig, validate_config
from .framing import LineTooLong
from .nicks import NickDirectory
from .protocol import decode_line
from .rooms import RoomRegistry
from .router import MessageRouter
from .session import Session, SessionManager
from .stats import StatsManager

_EVENTS_IDLE = selectors.EVENT_READ
_EVENTS_BACKLOGGED = selectors.EVENT_READ | selectors.EVENT_WRITE
_EVENTS_DRAINING = selectors.EVENT_WRITE


class HubService:
    """
    Single-threaded LRC chat server.

    One selector loop accepts connections, reads bytes into each session's
    line framer, hands complete lines to the MessageRouter, and writes the
    responses back with non-blocking sends. A partial write keeps the rest in
    the session's outbound buffer and waits for the socket to become
    writable again.
    """

    def __init__(self, config: ServerConfig) -> None:
        validate_config(config)
        self.config = config
        self.log = logging.getLogger("lrcd.hub")

        self._shutdown = threading.Event()
        self._selector: selectors.BaseSelector | None = None
        self._listener: socket.socket | None = None

        self.stats_manager = StatsManager()
        self.session_manager = SessionManager()
        self.room_registry = RoomRegistry()
        self.nick_directory = NickDirectory()
        self.router = MessageRouter(
            self.room_registry,
            self.nick_directory,
            config=config,
            stats=self.stats_manager,
        )

        self._last_stats_log: float | None = None
        # Sessions whose send failed or overflowed, with the reason; torn
        # down by _deliver once the current pass finishes.
        self._doomed: dict[Session, str] = {}

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port); useful when configured with port 0."""
        if self._listener is None:
            raise RuntimeError("server not started")
        host, port = self._listener.getsockname()[:2]
        return host, port

    def start(self) -> None:
        if self._listener is not None:
            return

        self.stats_manager.set_start_time()
        self._last_stats_log = time.monotonic()

        lsock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            lsock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            lsock.bind((self.config.host, int(self.config.port)))
            lsock.listen(int(self.config.listen_backlog))
            lsock.setblocking(False)
        except OSError:
            lsock.close()
            raise

        self._selector = selectors.DefaultSelector()
        self._selector.register(lsock, selectors.EVENT_READ, data=None)
        self._listener = lsock

        host, port = self.address
        self.log.info("Hub listening on %s:%s", host, port)
        self.log.info(
            "Policy max_line_bytes=%s max_outbound_bytes=%s nick_max_chars=%s max_room_name_len=%s",
            self.config.max_line_bytes,
            self.config.max_outbound_bytes,
            self.config.nick_max_chars,
            self.config.max_room_name_len,
        )

    def run_forever(self) -> None:
        """Start (if needed) and serve until SIGINT/SIGTERM or stop()."""
        signal.signal(signal.SIGINT, lambda *_: self.stop())
        signal.signal(signal.SIGTERM, lambda *_: self.stop())
        self.serve()

    def serve(self) -> None:
        """Run the selector loop in the calling thread until stop()."""
        if self._listener is None:
            self.start()
        sel = self._selector
        if sel is None:
            raise RuntimeError("server not started")

        try:
            while not self._shutdown.is_set():
                events = sel.select(timeout=float(self.config.select_timeout_s))
                for key, mask in events:
                    if key.data is None:
                        self._accept(key.fileobj)  # type: ignore[arg-type]
                    else:
                        self._service(key.data, mask)
                self._maybe_log_stats()
        finally:
            self._close_all()

    def stop(self) -> None:
        self._shutdown.set()

    def _accept(self, lsock: socket.socket) -> None:
        try:
            conn, addr = lsock.accept()
        except BlockingIOError:
            return
        except OSError as e:
            self.log.warning("Accept failed: %s", e)
            return

        if self._selector is None:
            conn.close()
            return

        conn.setblocking(False)
        session = self.session_manager.on_connection_accepted(
            conn, addr, max_line_bytes=int(self.config.max_line_bytes)
        )
        self._selector.register(conn, _EVENTS_IDLE, data=session)
        self.stats_manager.inc("connections")

    def _service(self, session: Session, mask: int) -> None:
        # Errors in one connection's handling never take down the loop.
        try:
            if mask & selectors.EVENT_WRITE:
                self._flush(session)
            if mask & selectors.EVENT_READ and self._is_reachable(session):
                self._read(session)
            if self._doomed:
                self._deliver([])
        except Exception:
            self.log.exception("Unhandled error session=%s; disconnecting", session.label)
            self._disconnect(session, "internal error")

    def _read(self, session: Session) -> None:
        if session.closing or session.sock is None:
            return
        try:
            data = session.sock.recv(int(self.config.recv_chunk_bytes))
        except (BlockingIOError, InterruptedError):
            return
        except OSError as e:
            self._disconnect(session, f"recv failed: {e}")
            return

        if not data:
            self._disconnect(session, "eof")
            return

        self.stats_manager.inc("bytes_in", len(data))
        session.framer.feed(data)

        outgoing: list[tuple[Session, str]] = []
        keep_open = True
        for raw in session.framer.lines():
            keep_open = self.router.route_line(session, decode_line(raw), outgoing)
            if not keep_open:
                break

        overflow: LineTooLong | None = None
        if keep_open:
            try:
                session.framer.ensure_within_limit()
            except LineTooLong as e:
                overflow = e

        self._deliver(outgoing)

        if not keep_open:
            self._close_after_flush(session)
        elif overflow is not None:
            self.stats_manager.inc("overflow_closes")
            self._disconnect(session, f"line too long: {overflow}")

    def _deliver(self, outgoing: list[tuple[Session, str]]) -> None:
        """
        Queue routed lines on their sessions and try to send them.

        A send that fails or overflows the backlog only marks its session
        (see _drop). Marked sessions are torn down after the pass, and the
        LEFT notices that produces are delivered on the next pass until
        nothing more is dropped.
        """
        while True:
            touched: dict[Session, None] = {}
            for target, line in outgoing:
                if not self._is_reachable(target):
                    continue
                target.queue_line(line)
                touched[target] = None

            for target in touched:
                if self._is_reachable(target):
                    self._flush(target)

            if not self._doomed:
                return

            doomed, self._doomed = self._doomed, {}
            outgoing = []
            for session, reason in doomed.items():
                self._teardown(session, reason, outgoing)

    def _is_reachable(self, session: Session) -> bool:
        return session not in self._doomed and self.session_manager.is_live(session)

    def _drop(self, session: Session, reason: str) -> None:
        """Mark a session for disconnect once the current delivery settles."""
        self._doomed.setdefault(session, reason)

    def _flush(self, session: Session) -> None:
        sock = session.sock
        if sock is None or not self._is_reachable(session):
            return

        if session.outbound:
            try:
                sent = sock.send(session.outbound)
            except (BlockingIOError, InterruptedError):
                sent = 0
            except OSError as e:
                self._drop(session, f"send failed: {e}")
                return
            if sent:
                del session.outbound[:sent]
                self.stats_manager.inc("bytes_out", sent)

        if session.outbound:
            if len(session.outbound) > int(self.config.max_outbound_bytes):
                self.stats_manager.inc("backlog_drops")
                self._drop(session, "output backlog exceeded")
                return
            self._set_events(session, _EVENTS_DRAINING if session.closing else _EVENTS_BACKLOGGED)
        elif session.closing:
            self._close_session(session, "bye")
        else:
            self._set_events(session, _EVENTS_IDLE)

    def _set_events(self, session: Session, events: int) -> None:
        if self._selector is None or session.sock is None:
            return
        key = self._selector.get_key(session.sock)
        if key.events != events:
            self._selector.modify(session.sock, events, data=session)

    def _close_after_flush(self, session: Session) -> None:
        if not self.session_manager.is_live(session):
            return
        session.closing = True
        self._flush(session)

    def _disconnect(self, session: Session, reason: str) -> None:
        """Abrupt close: clean up shared state silently, then drop the socket."""
        self._doomed.pop(session, None)
        outgoing: list[tuple[Session, str]] = []
        self._teardown(session, reason, outgoing)
        self._deliver(outgoing)

    def _teardown(
        self, session: Session, reason: str, outgoing: list[tuple[Session, str]]
    ) -> None:
        if not self.session_manager.is_live(session):
            return
        self._close_session(session, reason)
        self.router.handle_disconnect(session, outgoing)

    def _close_session(self, session: Session, reason: str) -> None:
        if not self.session_manager.on_connection_closed(session):
            return
        sock = session.sock
        if sock is not None:
            if self._selector is not None:
                try:
                    self._selector.unregister(sock)
                except (KeyError, ValueError):
                    pass
            try:
                sock.close()
            except OSError:
                pass
        session.outbound.clear()
        self.stats_manager.inc("disconnects")
        self.log.info("Session closed session=%s reason=%s", session.label, reason)

    def _maybe_log_stats(self) -> None:
        interval = float(self.config.stats_interval_s)
        if interval <= 0 or self._last_stats_log is None:
            return
        now = time.monotonic()
        if now - self._last_stats_log >= interval:
            self._last_stats_log = now
            self.log.info("%s", self.format_stats())

    def format_stats(self) -> str:
        return self.stats_manager.format_stats(
            session_stats=self.session_manager.get_stats(),
            room_stats=self.room_registry.get_stats(),
            nick_count=len(self.nick_directory),
        )

    def _close_all(self) -> None:
        self.log.info("%s", self.format_stats())

        for session in self.session_manager.clear_all():
            sock = session.sock
            if sock is None:
                continue
            if self._selector is not None:
                try:
                    self._selector.unregister(sock)
                except (KeyError, ValueError):
                    pass
            try:
                sock.close()
            except OSError:
                pass
            session.close()

        self._doomed.clear()
        self.room_registry.clear_all()
        self.nick_directory.clear_all()

        if self._listener is not None:
            if self._selector is not None:
                try:
                    self._selector.unregister(self._listener)
                except (KeyError, ValueError):
                    pass
            try:
                self._listener.close()
            except OSError:
                pass
            self._listener = None

        if self._selector is not None:
            self._selector.close()
            self._selector = None

        self.log.info("Hub stopped")
