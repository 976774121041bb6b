"""Cooperative cancellation for generation runs."""


class CancellationToken:
    """Flag polled by the orchestrator at iteration boundaries.

    Cancelling never interrupts an in-flight provider call; the run stops
    before starting its next chapter or batch.
    """

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
