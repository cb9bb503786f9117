from __future__ import annotations

import sys
from typing import TextIO

from tqdm import tqdm


class ProgressReporter:
    """Receives byte counts from the sender; the base class ignores them."""

    def start(self, total: int) -> None:
        pass

    def advance(self, n: int) -> None:
        pass

    def finish(self) -> None:
        pass


class TextProgressBar(ProgressReporter):
    def __init__(self, stream: TextIO | None = None, *, description: str = "Uploading..."):
        self.stream = stream if stream is not None else sys.stderr
        self.description = description
        self.bar: tqdm | None = None

    def start(self, total: int) -> None:
        self.finish()
        self.bar = tqdm(
            total=total,
            desc=self.description,
            unit="B",
            unit_scale=True,
            file=self.stream,
        )

    def advance(self, n: int) -> None:
        if self.bar is None:
            return
        # never run past the declared total
        self.bar.update(min(n, self.bar.total - self.bar.n))

    def finish(self) -> None:
        if self.bar is not None:
            self.bar.close()
            self.bar = None
