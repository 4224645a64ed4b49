"""Shared fixtures: an in-memory stand-in for the watchdog observer, logger reset."""

from __future__ import annotations

import logging

import pytest

from trackfinder.utils.constants import APP_NAME


class FakeWatch:
    def __init__(self, handler, path: str, recursive: bool) -> None:
        self.handler = handler
        self.path = path
        self.recursive = recursive


class FakeObserver:
    """Records schedule/unschedule calls and lets tests deliver events by hand."""

    def __init__(self, fail_schedule: bool = False) -> None:
        self.daemon = False
        self.started = False
        self.stopped = False
        self.joined = False
        self.watches: list[FakeWatch] = []
        self.unscheduled: list[FakeWatch] = []
        self._fail_schedule = fail_schedule

    def schedule(self, handler, path, recursive=False):
        if self._fail_schedule:
            raise OSError("inotify watch limit reached")
        watch = FakeWatch(handler, path, recursive)
        self.watches.append(watch)
        return watch

    def unschedule(self, watch) -> None:
        self.watches.remove(watch)
        self.unscheduled.append(watch)

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def is_alive(self) -> bool:
        return self.started and not self.joined

    def join(self, timeout=None) -> None:
        self.joined = True

    def emit(self, event) -> None:
        """Deliver an event to every scheduled handler."""
        for watch in list(self.watches):
            watch.handler.dispatch(event)


class ObserverFactory:
    """Callable factory that remembers every observer it built."""

    def __init__(self, fail_schedule: bool = False) -> None:
        self.fail_schedule = fail_schedule
        self.built: list[FakeObserver] = []

    def __call__(self) -> FakeObserver:
        observer = FakeObserver(fail_schedule=self.fail_schedule)
        self.built.append(observer)
        return observer

    @property
    def last(self) -> FakeObserver:
        return self.built[-1]


@pytest.fixture
def observer_factory() -> ObserverFactory:
    return ObserverFactory()


@pytest.fixture(autouse=True)
def reset_app_logger():
    """Drop handlers main() attached so each test configures logging afresh."""
    yield
    app_logger = logging.getLogger(APP_NAME)
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()
    app_logger.setLevel(logging.NOTSET)
