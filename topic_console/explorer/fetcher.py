"""Time-bounded message reads."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from topic_console.core.config import settings
from topic_console.explorer.api_client import ConsoleApiClient, error_message
from topic_console.explorer.errors import (
    NetworkError,
    RequestFailed,
    TimedOut,
    UpstreamTimeout,
)
from topic_console.explorer.offsets import FetchQuery, OffsetSelector, resolve_offset
from topic_console.models.messages import TopicMessage

logger = logging.getLogger(__name__)


class BoundedFetcher:
    """Issue one read per call under a deadline that depends on the selector.

    Tail reads (``latest``) need the broker to look up the high watermark
    first, so they get ``fetch_timeout_latest_sec``; everything else gets
    ``fetch_timeout_sec``. The deadline is handed to the transport and also
    enforced with a cancellation around the whole call: whichever fires first
    aborts it.
    """

    def __init__(
        self,
        client: ConsoleApiClient,
        topic: str,
        *,
        timeout: Optional[float] = None,
        latest_timeout: Optional[float] = None,
    ) -> None:
        self._client = client
        self.topic = topic
        self.timeout = timeout or settings.fetch_timeout_sec
        self.latest_timeout = latest_timeout or settings.fetch_timeout_latest_sec

    def timeout_for(self, selector: OffsetSelector) -> float:
        return self.latest_timeout if selector.is_latest else self.timeout

    async def fetch(self, query: FetchQuery) -> list[TopicMessage]:
        """Read the batch described by *query*.

        Raises
        ------
        InvalidOffset
            Before any request, if the custom offset is invalid.
        TimedOut, UpstreamTimeout, NetworkError, RequestFailed
            When the read fails, in that order of precedence.
        """
        offset = resolve_offset(query.selector)
        deadline = self.timeout_for(query.selector)
        call = self._client.get_messages(
            self.topic,
            partition=query.partition,
            offset=offset,
            limit=query.limit,
            timeout=deadline,
        )
        try:
            messages = await asyncio.wait_for(call, timeout=deadline)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.info("Read of %s[%d] from %s timed out after %.0fs",
                        self.topic, query.partition, offset, deadline)
            raise TimedOut() from exc
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == httpx.codes.GATEWAY_TIMEOUT:
                raise UpstreamTimeout() from exc
            raise RequestFailed(error_message(exc)) from exc
        except httpx.TransportError as exc:
            logger.warning("Read of %s failed: %s", self.topic, exc)
            raise NetworkError() from exc
        except ValueError as exc:
            # body parsed but is not a message batch
            raise RequestFailed("Received invalid messages data format from server") from exc
        logger.debug("Read %d messages from %s[%d] at %s", len(messages), self.topic, query.partition, offset)
        return messages
