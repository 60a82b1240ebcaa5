# radar/utils/progress.py

from typing import Dict, Optional
from tqdm import tqdm


class ProgressBar:
    """
    Thin wrapper around tqdm so reference and row progress look the same
    everywhere, with running status counts shown as a postfix.
    """

    def __init__(
        self,
        total: Optional[int] = None,
        desc: str = "",
        unit: str = "item",
        dynamic_ncols: bool = True,
        leave: bool = False,
    ):
        """
        Args:
            total: Expected count (None for indeterminate).
            desc: Description prefix (e.g. 'References 10.1000/xyz').
            unit: Unit label (e.g. 'ref', 'row').
            dynamic_ncols: Let tqdm auto-size to terminal width.
            leave: Keep the finished bar on screen.
        """
        self._bar = tqdm(
            total=total,
            desc=desc,
            unit=unit,
            dynamic_ncols=dynamic_ncols,
            leave=leave,
        )
        self.counts: Dict[str, int] = {}

    def update(self, n: int = 1, status: Optional[str] = None) -> None:
        if status:
            self.counts[status] = self.counts.get(status, 0) + n
            self._bar.set_postfix(self.counts, refresh=False)
        self._bar.update(n)

    def close(self) -> None:
        self._bar.close()


def create_progress_bar(
    total: Optional[int],
    desc: str,
    unit: str = "item",
) -> ProgressBar:
    """
    Factory helper to create a ProgressBar with consistent styling.
    Usage:
        bar = create_progress_bar(len(rows), "Batch", unit="row")
        bar.update(status="clean")
        bar.close()
    """
    return ProgressBar(total=total, desc=desc, unit=unit)
