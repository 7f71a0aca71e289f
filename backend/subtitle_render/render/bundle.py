"""Process-wide render bundle cache.

Building the bundle is expensive, so it happens at most once per process.
Concurrent first callers share one build. A failed build is not cached:
the next caller starts a fresh attempt.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from subtitle_render.exceptions import BundleBuildError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BundleState(Enum):
    NOT_STARTED = "not_started"
    BUILDING = "building"
    BUILT = "built"
    FAILED = "failed"


class BundleCache(Generic[T]):
    """Single-flight cache around an async bundle builder."""

    def __init__(
        self,
        builder: Callable[[], Awaitable[T]],
        release: Optional[Callable[[T], None]] = None,
    ):
        self._builder = builder
        self._release = release
        self._handle: Optional[T] = None
        self._inflight: Optional[asyncio.Task] = None
        self.build_count = 0
        self.last_error: Optional[str] = None

    @property
    def state(self) -> BundleState:
        if self._handle is not None:
            return BundleState.BUILT
        if self._inflight is not None:
            return BundleState.BUILDING
        if self.last_error is not None:
            return BundleState.FAILED
        return BundleState.NOT_STARTED

    @property
    def handle(self) -> Optional[T]:
        return self._handle

    async def ensure_bundle(self) -> T:
        """Return the bundle handle, building it on first use.

        Raises:
            BundleBuildError: If the build failed. The failure is not cached.
        """
        if self._handle is not None:
            return self._handle

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._build())
        else:
            logger.info("[BUNDLE] Waiting for in-progress bundle build")

        # One caller being cancelled must not cancel the shared build
        return await asyncio.shield(self._inflight)

    async def _build(self) -> T:
        self.build_count += 1
        try:
            handle = await self._builder()
        except Exception as e:
            self.last_error = str(e) or type(e).__name__
            logger.error(f"[BUNDLE] Bundle build failed: {self.last_error}")
            raise BundleBuildError(f"Failed to build render bundle: {self.last_error}") from e
        else:
            self._handle = handle
            self.last_error = None
            return handle
        finally:
            self._inflight = None

    async def release(self) -> None:
        """Release the cached bundle; the next call to ensure_bundle rebuilds it."""
        if self._inflight is not None:
            try:
                await asyncio.shield(self._inflight)
            except BundleBuildError:
                pass
        handle, self._handle = self._handle, None
        if handle is not None and self._release is not None:
            self._release(handle)
