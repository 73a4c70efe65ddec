"""Per-browser session state: the uploaded script and what was derived from it"""

import itertools
import threading
import time
import uuid
from collections import namedtuple

from cachetools import TTLCache

ACTIONS = ("overview", "diagram", "convert", "verify")

_tickets = itertools.count(1)

# Ticket plus the texts it was issued against, read under one lock
Run = namedtuple("Run", "ticket script converted")


class SessionState:
    """Script, overview and converted code for one browser session.

    Every action request takes a ticket; only the holder of the latest ticket
    for an action may write its result back. Loading a new script hands out
    fresh tickets for all actions so answers about the old script are dropped.
    """

    def __init__(self):
        self.lock = threading.Lock()
        self.raw_script = ""
        self.filename = None
        self.overview = ""
        self.converted = ""
        self._current = {}

    def set_script(self, text, filename=None):
        with self.lock:
            self.raw_script = text
            self.filename = filename
            self.overview = ""
            self.converted = ""
            self._supersede_all()

    def get_script(self):
        return self.raw_script

    def get_converted(self):
        return self.converted

    def set_overview(self, text):
        self.overview = text

    def set_converted(self, text):
        self.converted = text

    def reset(self):
        self.set_script("")

    def begin(self, action, needs="raw_script"):
        """Take a ticket for `action` and snapshot the texts it works on.

        Returns None, without taking a ticket, when the `needs` field is empty.
        """
        with self.lock:
            if not getattr(self, needs):
                return None
            ticket = next(_tickets)
            self._current[action] = ticket
            return Run(ticket, self.raw_script, self.converted)

    def is_current(self, action, ticket):
        return self._current.get(action) == ticket

    def _supersede_all(self):
        for action in ACTIONS:
            self._current[action] = next(_tickets)


class SessionStore:
    """In-memory map of session id -> SessionState.

    Sessions idle for longer than `ttl` seconds expire, and at most `maxsize`
    are kept (least recently used go first).
    """

    def __init__(self, maxsize=1000, ttl=3600, timer=time.monotonic):
        self._lock = threading.Lock()
        self._sessions = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)

    @staticmethod
    def new_id():
        return uuid.uuid4().hex

    def get(self, sid):
        with self._lock:
            state = self._sessions.get(sid)
            if state is None:
                state = SessionState()
            # re-inserting restarts the idle timer
            self._sessions[sid] = state
            return state

    def discard(self, sid):
        """Drop a session, superseding anything still running against it"""
        with self._lock:
            state = self._sessions.pop(sid, None)
        if state is not None:
            state.reset()
        return state

    def __len__(self):
        with self._lock:
            self._sessions.expire()
            return len(self._sessions)
