"""
views.py — popup view state and the refresh timers that belong to it.

The popup has three pages addressed by a location-hash fragment:

    #list              accounts with their live codes
    #addnew            add-account form
    #view/<name>       one account (name is URL-encoded)

Every page that shows a code owns a CodeRefresher. The Router keeps them
attached to the current ViewState and stops all of them before the next view
starts, so leaving a page never leaves a timer running behind it.
"""

import asyncio
import contextlib
import enum
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Mapping, Optional
from urllib.parse import quote, unquote

from .errors import HashPrimitiveError
from .otp_core import DEFAULT_TIME_STEP, generate, hmac_sha1

logger = logging.getLogger(__name__)

ERROR_TEXT = "Error"


class ViewKind(enum.Enum):
    LIST = "list"
    ADD = "addnew"
    VIEW = "view"


@dataclass(frozen=True)
class ViewState:
    kind: ViewKind
    account: Optional[str] = None

    @classmethod
    def from_hash(cls, fragment: Optional[str]) -> "ViewState":
        """Parse a location hash; anything unknown lands on the list."""
        fragment = (fragment or "").lstrip("#")
        if fragment.startswith("view/"):
            name = unquote(fragment.split("/", 1)[1])
            if name:
                return cls(ViewKind.VIEW, name)
        elif fragment == ViewKind.ADD.value:
            return cls(ViewKind.ADD)
        return cls(ViewKind.LIST)

    def to_hash(self) -> str:
        if self.kind is ViewKind.VIEW:
            return "#view/" + quote(self.account or "", safe="")
        return "#" + self.kind.value


class CodeRefresher:
    """
    Keeps one account's code up to date while its view is visible.

    The first code is produced immediately, then the task sleeps until the next
    30 s boundary and recomputes from the live clock. A failed generation is
    reported to `on_error` and tried again at the next boundary only.
    """

    def __init__(
        self,
        name: str,
        secret: str,
        on_code: Callable[[str, str], None],
        on_error: Optional[Callable[[str, Exception], None]] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        signer=hmac_sha1,
        timestep: int = DEFAULT_TIME_STEP,
    ):
        self.name = name
        self.secret = secret
        self._on_code = on_code
        self._on_error = on_error
        self._clock = clock
        self._sleep = sleep
        self._signer = signer
        self._timestep = timestep
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.active:
            return
        self._task = asyncio.ensure_future(self._run())

    async def refresh(self) -> Optional[str]:
        try:
            code = await generate(self.secret, self._clock(), self._signer)
            self._on_code(self.name, code)
        except HashPrimitiveError as e:
            logger.error("TOTP error for %r: %s", self.name, e)
            self._report(e)
            return None
        except Exception as e:
            logger.exception("Refresh failed for %r", self.name)
            self._report(e)
            return None
        return code

    def _report(self, exc: Exception) -> None:
        if self._on_error is not None:
            self._on_error(self.name, exc)

    async def _run(self) -> None:
        try:
            while True:
                await self.refresh()
                now = self._clock()
                await self._sleep(self._timestep - (now % self._timestep))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # clock or sleep broke; the refresher cannot schedule itself any more
            logger.exception("Refresher for %r stopped", self.name)
            self._report(e)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        if task.done():
            if not task.cancelled() and task.exception() is not None:
                logger.error("Refresher for %r had failed: %s", self.name, task.exception())
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


class Router:
    """
    Drives the popup pages.

    Arguments:
        load_keys: returns the whole {name: secret} mapping (the account store)
        on_code: called with (name, code) whenever a visible code changes
        on_error: called with (name, exception) when generation fails
        clock / sleep: injectable time sources, mainly for tests
    """

    def __init__(
        self,
        load_keys: Callable[[], Mapping[str, str]],
        on_code: Callable[[str, str], None],
        on_error: Optional[Callable[[str, Exception], None]] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._load_keys = load_keys
        self._on_code = on_code
        self._on_error = on_error
        self._clock = clock
        self._sleep = sleep
        self.state: Optional[ViewState] = None
        self.refreshers: List[CodeRefresher] = []
        self._lock: Optional[asyncio.Lock] = None

    def _guard(self) -> asyncio.Lock:
        # created on first use so it belongs to the running loop
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def navigate(self, fragment: Optional[str]) -> ViewState:
        """Tear down the current view, then show the one named by fragment."""
        async with self._guard():
            return await self._navigate(fragment)

    async def _navigate(self, fragment: Optional[str]) -> ViewState:
        await self._stop_refreshers()

        state = ViewState.from_hash(fragment)
        keys: Dict[str, str] = dict(self._load_keys())

        if state.kind is ViewKind.VIEW and state.account not in keys:
            logger.warning("Unknown account %r, showing list", state.account)
            state = ViewState(ViewKind.LIST)

        if state.kind is ViewKind.LIST:
            accounts = list(keys.items())
        elif state.kind is ViewKind.VIEW:
            accounts = [(state.account, keys[state.account])]
        else:
            accounts = []

        self.state = state
        for name, secret in accounts:
            refresher = CodeRefresher(
                name,
                secret,
                self._on_code,
                self._on_error,
                clock=self._clock,
                sleep=self._sleep,
            )
            self.refreshers.append(refresher)
            refresher.start()
        return state

    async def close(self) -> None:
        async with self._guard():
            await self._stop_refreshers()
            self.state = None

    async def _stop_refreshers(self) -> None:
        refreshers, self.refreshers = self.refreshers, []
        for refresher in refreshers:
            await refresher.stop()
