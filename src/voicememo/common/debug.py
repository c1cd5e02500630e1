"""Console diagnostics for VoiceMemo.

`dbg` is silent unless VOICEMEMO_DEBUG=1; `warn` always reports.
"""

from __future__ import annotations

import os
import sys
import time


def dbg(scope: str, msg: str) -> None:
    if os.environ.get("VOICEMEMO_DEBUG") == "1":
        ts = time.strftime("%H:%M:%S")
        print(f"[{scope} {ts}] {msg}", flush=True)


def warn(msg: str) -> None:
    print(f"VoiceMemo: {msg}", file=sys.stderr, flush=True)
