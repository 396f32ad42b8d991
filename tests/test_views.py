import asyncio

import pytest

from mint_core import otp_core
from mint_core.errors import HashPrimitiveError
from mint_core.views import CodeRefresher, Router, ViewKind, ViewState

from conftest import RFC_SECRET


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def parking_sleep(clock, sleeps):
    """Advance the fake clock, then block like a real timer would."""
    async def sleep(seconds):
        sleeps.append(seconds)
        clock.now += seconds
        await asyncio.Event().wait()
    return sleep


async def settle():
    for _ in range(10):
        await asyncio.sleep(0)


@pytest.mark.parametrize(
    "fragment, expected",
    [
        ("", ViewState(ViewKind.LIST)),
        (None, ViewState(ViewKind.LIST)),
        ("#list", ViewState(ViewKind.LIST)),
        ("#unknown", ViewState(ViewKind.LIST)),
        ("#addnew", ViewState(ViewKind.ADD)),
        ("#view/GitHub", ViewState(ViewKind.VIEW, "GitHub")),
        ("#view/My%20Bank", ViewState(ViewKind.VIEW, "My Bank")),
        ("#view/", ViewState(ViewKind.LIST)),
    ],
)
def test_view_state_from_hash(fragment, expected):
    assert ViewState.from_hash(fragment) == expected


def test_view_state_to_hash():
    assert ViewState(ViewKind.LIST).to_hash() == "#list"
    assert ViewState(ViewKind.ADD).to_hash() == "#addnew"
    assert ViewState(ViewKind.VIEW, "a/b c").to_hash() == "#view/a%2Fb%20c"
    assert ViewState.from_hash("#view/a%2Fb%20c").account == "a/b c"


def test_refresher_regenerates_at_each_window_boundary():
    clock = FakeClock(59)
    codes = []

    async def sleep(seconds):
        clock.now += seconds
        if len(codes) >= 3:
            await asyncio.Event().wait()

    async def scenario():
        refresher = CodeRefresher("rfc", RFC_SECRET, lambda name, code: codes.append(code),
                                  clock=clock, sleep=sleep)
        refresher.start()
        while len(codes) < 3:
            await asyncio.sleep(0)
        await refresher.stop()
        return refresher

    refresher = asyncio.run(scenario())
    assert codes == [otp_core.hotp(RFC_SECRET, 1), otp_core.hotp(RFC_SECRET, 2), otp_core.hotp(RFC_SECRET, 3)]
    assert not refresher.active


def test_refresher_sleeps_until_next_boundary():
    clock = FakeClock(59)
    sleeps = []

    async def scenario():
        refresher = CodeRefresher("rfc", RFC_SECRET, lambda name, code: None,
                                  clock=clock, sleep=parking_sleep(clock, sleeps))
        refresher.start()
        await settle()
        await refresher.stop()

    asyncio.run(scenario())
    assert sleeps == [1]


def test_refresher_reports_errors_and_keeps_running():
    errors = []
    clock = FakeClock(59)

    async def broken(key, message):
        raise RuntimeError("unsupported")

    async def scenario():
        refresher = CodeRefresher(
            "rfc", RFC_SECRET, lambda name, code: None,
            on_error=lambda name, exc: errors.append((name, exc)),
            clock=clock, sleep=parking_sleep(clock, []), signer=broken,
        )
        refresher.start()
        await settle()
        still_running = refresher.active
        await refresher.stop()
        return still_running

    assert asyncio.run(scenario())
    assert len(errors) == 1
    assert errors[0][0] == "rfc"
    assert isinstance(errors[0][1], HashPrimitiveError)


def test_router_list_starts_one_refresher_per_account():
    keys = {"rfc": RFC_SECRET, "hello": "JBSWY3DPEHPK3PXP"}
    shown = {}
    clock = FakeClock(59)

    async def scenario():
        router = Router(lambda: keys, lambda name, code: shown.__setitem__(name, code),
                        clock=clock, sleep=parking_sleep(clock, []))
        state = await router.navigate("#list")
        await settle()
        active = [r.active for r in router.refreshers]
        await router.close()
        return state, active, router

    state, active, router = asyncio.run(scenario())
    assert state == ViewState(ViewKind.LIST)
    assert active == [True, True]
    assert shown["rfc"] == "287082"
    assert set(shown) == {"rfc", "hello"}
    assert router.refreshers == []
    assert router.state is None


def test_router_cancels_previous_view_timers():
    keys = {"rfc": RFC_SECRET, "hello": "JBSWY3DPEHPK3PXP"}
    clock = FakeClock(59)

    async def scenario():
        router = Router(lambda: keys, lambda name, code: None,
                        clock=clock, sleep=parking_sleep(clock, []))
        await router.navigate("#list")
        await settle()
        list_refreshers = list(router.refreshers)

        state = await router.navigate("#view/rfc")
        await settle()
        view_refreshers = list(router.refreshers)

        await router.navigate("#addnew")
        add_refreshers = list(router.refreshers)
        await router.close()
        return list_refreshers, state, view_refreshers, add_refreshers

    list_refreshers, state, view_refreshers, add_refreshers = asyncio.run(scenario())
    assert all(not r.active for r in list_refreshers)
    assert state == ViewState(ViewKind.VIEW, "rfc")
    assert [r.name for r in view_refreshers] == ["rfc"]
    assert all(not r.active for r in view_refreshers)
    assert add_refreshers == []


def test_router_unknown_account_falls_back_to_list():
    async def scenario():
        clock = FakeClock(59)
        router = Router(lambda: {"rfc": RFC_SECRET}, lambda name, code: None,
                        clock=clock, sleep=parking_sleep(clock, []))
        state = await router.navigate("#view/missing")
        names = [r.name for r in router.refreshers]
        await router.close()
        return state, names

    state, names = asyncio.run(scenario())
    assert state == ViewState(ViewKind.LIST)
    assert names == ["rfc"]


def test_refresher_reports_display_callback_failure():
    errors = []
    clock = FakeClock(59)

    def on_code(name, code):
        raise KeyError(name)

    async def scenario():
        refresher = CodeRefresher(
            "rfc", RFC_SECRET, on_code,
            on_error=lambda name, exc: errors.append((name, exc)),
            clock=clock, sleep=parking_sleep(clock, []),
        )
        refresher.start()
        await settle()
        still_running = refresher.active
        await refresher.stop()
        return still_running

    assert asyncio.run(scenario())
    assert len(errors) == 1
    assert isinstance(errors[0][1], KeyError)


def test_refresher_reports_broken_clock_and_stops_quietly():
    errors = []
    calls = []

    def clock():
        calls.append(None)
        if len(calls) > 1:
            raise OSError("clock unavailable")
        return 59

    async def scenario():
        refresher = CodeRefresher(
            "rfc", RFC_SECRET, lambda name, code: None,
            on_error=lambda name, exc: errors.append((name, exc)),
            clock=clock, sleep=parking_sleep(FakeClock(0), []),
        )
        refresher.start()
        await settle()
        finished = not refresher.active
        await refresher.stop()
        return finished

    assert asyncio.run(scenario())
    assert len(errors) == 1
    assert isinstance(errors[0][1], OSError)


def test_router_overlapping_navigation_keeps_only_last_view():
    keys = {"rfc": RFC_SECRET, "hello": "JBSWY3DPEHPK3PXP"}
    clock = FakeClock(59)

    async def scenario():
        router = Router(lambda: keys, lambda name, code: None,
                        clock=clock, sleep=parking_sleep(clock, []))
        await router.navigate("#list")
        await settle()
        earlier = list(router.refreshers)

        await asyncio.gather(router.navigate("#view/rfc"), router.navigate("#list"))
        await settle()
        names = [r.name for r in router.refreshers]
        active = [r.active for r in router.refreshers]
        state = router.state
        await router.close()
        return earlier, state, names, active

    earlier, state, names, active = asyncio.run(scenario())
    assert all(not r.active for r in earlier)
    assert state == ViewState(ViewKind.LIST)
    assert names == ["rfc", "hello"]
    assert active == [True, True]
