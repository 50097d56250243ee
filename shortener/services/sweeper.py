import asyncio
import logging

from starlette.concurrency import run_in_threadpool

from shortener.services.otp import OtpStore

LOGGER = logging.getLogger(__name__)


class ExpirySweeper:
    """Periodically deletes OTP rows whose ``expires_at`` has passed.

    This plays the part of a time-to-live index: callers never have to
    delete expired codes themselves, and a failed pass is logged and
    retried on the next tick.
    """

    def __init__(self, store: OtpStore, interval_seconds: float) -> None:
        self._store = store
        self._interval = max(0.01, float(interval_seconds))
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self) -> int:
        return await run_in_threadpool(self._store.purge_expired)

    async def _run(self) -> None:
        while True:
            try:
                await self.sweep_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                LOGGER.exception("OTP expiry sweep failed")
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="otp-expiry-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
