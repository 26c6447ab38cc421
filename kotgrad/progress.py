"""Single-line console progress bar for training loops."""

from __future__ import annotations

import sys
from typing import Optional, TextIO

DEFAULT_BAR_WIDTH = 30


class ProgressBar:
    """Shows epoch or in-epoch sample progress with the current loss on one line."""

    def __init__(
        self,
        total_epochs: int,
        total_samples: int = 0,
        bar_width: int = DEFAULT_BAR_WIDTH,
        stream: Optional[TextIO] = None,
    ) -> None:
        if bar_width < 0:
            raise ValueError("Bar width cannot be negative")
        self.total_epochs = int(total_epochs)
        self.total_samples = int(total_samples)
        self.bar_width = int(bar_width)
        self.current_epoch = 0
        self.current_sample = 0
        self.current_loss = 0.0
        self.show_samples = self.total_samples > 0
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        """Where the bar is written; standard output unless one was given."""
        return self._stream if self._stream is not None else sys.stdout

    def update(self, epoch: int, loss: float, sample: Optional[int] = None) -> None:
        """Record progress and redraw; passing ``sample`` switches to sample mode."""
        self.current_epoch = int(epoch)
        self.current_loss = float(loss)
        if sample is None:
            self.show_samples = False
        else:
            self.current_sample = int(sample)
            self.show_samples = True
        self.display()

    def finish_epoch(self) -> None:
        """Complete the sample bar of the current epoch and end its line."""
        if self.show_samples:
            self.current_sample = self.total_samples
            self.display()
            self.stream.write("\n")
            self.stream.flush()

    def finish(self) -> None:
        """Fill any unfinished sample bar and end the line."""
        if self.show_samples and self.current_sample < self.total_samples:
            self.current_sample = self.total_samples
            self.display()
        self.stream.write("\n")
        self.stream.flush()

    @staticmethod
    def _fraction(done: int, total: int) -> float:
        return done / total if total > 0 else 0.0

    def _bar(self, fraction: float) -> str:
        filled = max(0, min(self.bar_width, int(fraction * self.bar_width)))
        return "[" + "=" * filled + "." * (self.bar_width - filled) + "]"

    def render(self) -> str:
        """The text of the bar, without the leading carriage return."""
        head = f"Epoch {self.current_epoch} / {self.total_epochs} "
        if self.show_samples and self.total_samples > 0:
            fraction = self._fraction(self.current_sample, self.total_samples)
            return (
                f"{head}{self._bar(fraction)} "
                f"{self.current_sample} / {self.total_samples} "
                f"loss: {self.current_loss:.3f}"
            )
        fraction = self._fraction(self.current_epoch, self.total_epochs)
        return f"{head}{self._bar(fraction)} loss: {self.current_loss:.3f}"

    def display(self) -> None:
        """Redraw the bar over the current line."""
        self.stream.write("\r" + self.render())
        self.stream.flush()