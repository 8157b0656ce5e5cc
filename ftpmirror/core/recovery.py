"""
Operator-driven recovery loop

    PROMPTING → RETRY             re-run from the configured root
              → RESTART_AND_RETRY restart the FTP daemon, wait, re-run
              → EXIT              stop
"""
import sys
import time
import traceback
from typing import Callable, Optional
from .. import config as _cfg
from ..utils.logging import is_verbose, log, warn

PROMPT = "Press 1 to retry, 2 to restart FTP and retry, or other to exit"

RETRY = "retry"
RESTART_AND_RETRY = "restart"
EXIT = "exit"


def parse_choice(answer: str) -> str:
    answer = answer.strip()
    if answer == "1":
        return RETRY
    if answer == "2":
        return RESTART_AND_RETRY
    return EXIT


class OperatorPrompt:
    """
    The single interactive-input handle of a recovery loop.
    Streams are bound on the first question, and released by close()
    (or by leaving the with-block) exactly once.
    """

    def __init__(self, stdin=None, stdout=None):
        self._stdin = stdin
        self._stdout = stdout
        self._in = None
        self._out = None
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def opened(self) -> bool:
        return self._in is not None

    def _open(self):
        if self.closed:
            raise ValueError("operator prompt is closed")
        if self._in is None:
            self._in = self._stdin if self._stdin is not None else sys.stdin
            self._out = self._stdout if self._stdout is not None else sys.stdout

    def ask(self) -> str:
        """Ask once; EOF or Ctrl-C on input counts as exit."""
        self._open()
        print(PROMPT, file=self._out, flush=True)
        try:
            answer = self._in.readline()
        except KeyboardInterrupt:
            return EXIT
        if not answer:
            return EXIT
        return parse_choice(answer)

    def close(self):
        if self.closed:
            return
        self._in = None
        self._out = None
        self.closed = True


def run_with_recovery(run_once: Callable[[], object],
                      restart: Callable[[], object],
                      prompt: Optional[OperatorPrompt] = None,
                      restart_delay: Optional[float] = None,
                      sleep: Callable[[float], None] = time.sleep) -> bool:
    """
    Call run_once until it returns without raising or the operator gives up.
    run_once owns (and closes) its FTP connection, so the transport is
    already released whenever the prompt is shown.
    Returns True if a run completed, False if the operator chose to exit.
    """
    if restart_delay is None:
        restart_delay = _cfg.RESTART_DELAY

    with (prompt if prompt is not None else OperatorPrompt()) as operator:
        while True:
            try:
                run_once()
                return True
            except Exception as exc:
                warn(f"Mirror run failed: {exc}")
                if is_verbose():
                    traceback.print_exc()

            choice = operator.ask()
            if choice == RETRY:
                log("[recovery] retrying …")
            elif choice == RESTART_AND_RETRY:
                restart()
                if restart_delay > 0:
                    log(f"[recovery] waiting {restart_delay:g}s for the FTP service …")
                    sleep(restart_delay)
                log("[recovery] retrying …")
            else:
                log("[recovery] exiting.")
                return False
