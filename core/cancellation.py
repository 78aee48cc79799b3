# core/cancellation.py
class CancellationToken:
    """
    Cooperative cancellation: in-flight work is not aborted, its result is
    dropped by whoever checks `cancelled` before committing.
    """

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
