"""Application runner driving hooks through start-up, run and shutdown phases."""

from __future__ import annotations

import signal
import sys
import threading
import traceback
from typing import Any, Callable

from tsj.infra import Infra
from tsj.logger import get_logger

__all__ = [
    "Hook",
    "RunnerOption",
    "Runner",
    "new_infra_hook_option",
    "new_database_migration_hook_option",
    "new_startup_hook_option",
    "new_run_hook_option",
    "new_subscriber_hook_option",
    "new_shutdown_hook_option",
]

Hook = Callable[["Runner"], Any]
RunnerOption = Callable[["Runner"], None]

_POLL_SECONDS = 0.2


class Runner:
    """Runs registered hooks phase by phase and waits for a shutdown signal."""

    def __init__(self, *options: RunnerOption):
        self.log = get_logger("Runner")
        self.infra = Infra()
        self.received_signal: signal.Signals | None = None
        self._infra_hooks: list[Hook] = []
        self._db_migration_hooks: list[Hook] = []
        self._startup_hooks: list[Hook] = []
        self._run_hooks: list[Hook] = []
        self._subscriber_hooks: list[Hook] = []
        self._shutdown_hooks: list[Hook] = []
        self._shutdown = threading.Event()
        for option in options:
            option(self)

    def add_infra_hook(self, name: str, hook: Hook) -> None:
        self._infra_hooks.append(hook)
        self.log.debug("registered infra hook", hook_name=name)

    def add_database_migration_hook(self, name: str, hook: Hook) -> None:
        self._db_migration_hooks.append(hook)
        self.log.debug("registered database migration hook", hook_name=name)

    def add_startup_hook(self, name: str, hook: Hook) -> None:
        self._startup_hooks.append(hook)
        self.log.debug("registered startup hook", hook_name=name)

    def add_run_hook(self, name: str, hook: Hook) -> None:
        self._run_hooks.append(hook)
        self.log.debug("registered run hook", hook_name=name)

    def add_subscriber_hook(self, name: str, hook: Hook) -> None:
        self._subscriber_hooks.append(hook)
        self.log.debug("registered subscriber hook", hook_name=name)

    def add_shutdown_hook(self, name: str, hook: Hook) -> None:
        self._shutdown_hooks.append(hook)
        self.log.debug("registered shutdown hook", hook_name=name)

    def request_shutdown(self) -> None:
        """Ask a running ``run`` to proceed to its shutdown hooks."""
        self._shutdown.set()

    def _on_signal(self, signum: int, _frame: Any) -> None:
        self.received_signal = signal.Signals(signum)
        self._shutdown.set()

    @staticmethod
    def _dump_stacks(_signum: int, _frame: Any) -> None:
        names = {thread.ident: thread.name for thread in threading.enumerate()}
        dump = "\n".join(
            f"Thread {names.get(ident, ident)}:\n" + "".join(traceback.format_stack(frame))
            for ident, frame in sys._current_frames().items()
        )
        get_logger("Run").info("stack trace", dump=dump)

    def _install_signal_handlers(self) -> dict[int, Any]:
        if threading.current_thread() is not threading.main_thread():
            return {}
        previous = {}
        for sig in (signal.SIGINT, signal.SIGTERM):
            previous[sig] = signal.signal(sig, self._on_signal)
        dump_signal = getattr(signal, "SIGUSR2", None)
        if dump_signal is not None:
            previous[dump_signal] = signal.signal(dump_signal, self._dump_stacks)
        return previous

    @staticmethod
    def _restore_signal_handlers(previous: dict[int, Any]) -> None:
        for sig, handler in previous.items():
            if handler is not None:
                signal.signal(sig, handler)

    def run(self) -> None:
        """Run all hooks, block until a signal or request, then shut down.

        An exception from any hook stops the run and propagates.
        """
        log = get_logger("Run")
        log.info("starting up runners")

        for phase in (self._infra_hooks, self._db_migration_hooks, self._startup_hooks):
            for hook in phase:
                hook(self)

        previous = self._install_signal_handlers()
        try:
            for phase in (self._run_hooks, self._subscriber_hooks):
                for hook in phase:
                    hook(self)

            while not self._shutdown.wait(_POLL_SECONDS):
                pass
            reason = (
                self.received_signal.name
                if self.received_signal is not None
                else "shutdown requested"
            )
            log.info(f"received signal: {reason}, shutting down now...")

            for hook in self._shutdown_hooks:
                hook(self)
        finally:
            self._restore_signal_handlers(previous)

        log.info("stopped everything")


def new_infra_hook_option(name: str, hook: Hook) -> RunnerOption:
    return lambda runner: runner.add_infra_hook(name, hook)


def new_database_migration_hook_option(name: str, hook: Hook) -> RunnerOption:
    return lambda runner: runner.add_database_migration_hook(name, hook)


def new_startup_hook_option(name: str, hook: Hook) -> RunnerOption:
    return lambda runner: runner.add_startup_hook(name, hook)


def new_run_hook_option(name: str, hook: Hook) -> RunnerOption:
    return lambda runner: runner.add_run_hook(name, hook)


def new_subscriber_hook_option(name: str, hook: Hook) -> RunnerOption:
    return lambda runner: runner.add_subscriber_hook(name, hook)


def new_shutdown_hook_option(name: str, hook: Hook) -> RunnerOption:
    return lambda runner: runner.add_shutdown_hook(name, hook)