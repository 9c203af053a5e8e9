import asyncio


class CancelToken:
    """Advisory cancellation handle passed into a single in-flight request.

    The holder of the token calls ``cancel()``; the callee checks
    ``cancelled`` (or awaits ``wait()``) and short-circuits.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()
