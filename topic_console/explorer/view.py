"""Message explorer: one topic view with its fetch and publish paths."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx

from topic_console.core.config import settings
from topic_console.explorer.api_client import ConsoleApiClient, error_message
from topic_console.explorer.errors import ConsoleError, FetchError, RequestFailed
from topic_console.explorer.fetcher import BoundedFetcher
from topic_console.explorer.offsets import EARLIEST, FetchQuery, OffsetSelector
from topic_console.explorer.presenter import (
    ExpansionState,
    MessageFormat,
    Row,
    filter_messages,
    render_row,
)
from topic_console.explorer.publisher import Publisher, PublishRequest
from topic_console.explorer.state import BusyFlag
from topic_console.models.messages import PublishAck, TopicMessage
from topic_console.models.topics import TopicInfo

logger = logging.getLogger(__name__)


@dataclass
class ViewState:
    selector: OffsetSelector = field(default=EARLIEST)
    partition: int = 0
    limit: int = field(default_factory=lambda: settings.default_limit)
    search_term: str = ""
    format: MessageFormat = MessageFormat.TEXT


class MessageExplorer:
    """State of one topic's message view.

    At most one fetch and, independently, one publish are outstanding; a
    second attempt while one is pending raises
    :class:`~topic_console.explorer.errors.OperationPending`. Each fetch takes
    a generation number, and its result is applied only if no later fetch or
    query change happened meanwhile.

    Fetch failures are not raised: they are kept in ``fetch_state.error`` so
    the view can render them next to the retry actions.
    """

    def __init__(
        self,
        client: ConsoleApiClient,
        topic: str,
        *,
        fetcher: Optional[BoundedFetcher] = None,
        publisher: Optional[Publisher] = None,
    ) -> None:
        self.topic_name = topic
        self.topic: Optional[TopicInfo] = None
        self.view = ViewState()
        self.messages: list[TopicMessage] = []
        self.expanded = ExpansionState()
        self.fetch_state = BusyFlag("fetch")
        self.publish_state = BusyFlag("publish")
        self.last_ack: Optional[PublishAck] = None
        self._client = client
        self._fetcher = fetcher or BoundedFetcher(client, topic)
        self._publisher = publisher or Publisher(client, topic)
        self._generation = 0
        self._last_query: Optional[FetchQuery] = None

    # ---------- topic metadata ----------
    async def load_topic(self) -> TopicInfo:
        """Load partition metadata for the partition picker."""
        try:
            self.topic = await self._client.get_topic(self.topic_name)
        except httpx.HTTPError as exc:
            raise RequestFailed(error_message(exc)) from exc
        except ValueError as exc:
            raise RequestFailed(str(exc)) from exc
        ids = self.topic.partition_ids
        if ids and self.view.partition not in ids:
            self.view.partition = ids[0]
        return self.topic

    @property
    def partition_ids(self) -> list[int]:
        return self.topic.partition_ids if self.topic else []

    # ---------- view state (explicit user actions) ----------
    def set_selector(self, selector: OffsetSelector) -> None:
        self.view.selector = selector
        self._invalidate()

    def set_partition(self, partition: int) -> None:
        if self.topic is not None and partition not in self.partition_ids:
            raise ValueError(f"partition {partition} does not exist for topic '{self.topic_name}'")
        self.view.partition = partition
        self._invalidate()

    def set_limit(self, limit: int) -> None:
        if limit <= 0:
            raise ValueError("limit must be a positive integer")
        self.view.limit = limit
        self._invalidate()

    def set_search_term(self, term: str) -> None:
        self.view.search_term = term

    def set_format(self, fmt: MessageFormat | str) -> None:
        self.view.format = MessageFormat(fmt)

    def current_query(self) -> FetchQuery:
        return FetchQuery(self.view.partition, self.view.selector, self.view.limit)

    def _invalidate(self) -> None:
        # a response still in flight belongs to the previous query
        self._generation += 1

    # ---------- fetch ----------
    @property
    def is_fetching(self) -> bool:
        return self.fetch_state.pending

    @property
    def fetch_error(self) -> Optional[ConsoleError]:
        return self.fetch_state.error

    async def fetch(self, query: Optional[FetchQuery] = None) -> Optional[list[TopicMessage]]:
        """Fetch *query* (default: the current view) and replace the result set.

        An explicit *query* becomes the view state, so the partition, selector
        and limit shown always name the rows on screen.

        Returns the new messages, or ``None`` when the fetch failed or its
        response arrived after the view moved on.
        """
        self.fetch_state.begin()
        if query is not None:
            self.view.partition = query.partition
            self.view.selector = query.selector
            self.view.limit = query.limit
        query = self.current_query()
        self._generation += 1
        generation = self._generation
        self._last_query = query
        try:
            messages = await self._fetcher.fetch(query)
        except ConsoleError as exc:
            if generation != self._generation:
                self.fetch_state.succeed()
                return None
            logger.info("Fetch from %s failed: %s", self.topic_name, exc.message)
            if isinstance(exc, FetchError):
                self._replace([])
            self.fetch_state.fail(exc)
            return None
        except BaseException:
            self.fetch_state.succeed()
            raise
        if generation != self._generation:
            logger.debug("Discarding stale response for %s (%s)", self.topic_name, query)
            self.fetch_state.succeed()
            return None
        self._replace(messages)
        self.fetch_state.succeed()
        return messages

    def _replace(self, messages: list[TopicMessage]) -> None:
        self.messages = list(messages)
        self.expanded.clear()

    async def retry(self) -> Optional[list[TopicMessage]]:
        """Fetch again with the current view state."""
        return await self.fetch()

    @property
    def can_retry_with_earliest(self) -> bool:
        return (
            isinstance(self.fetch_state.error, FetchError)
            and self._last_query is not None
            and self._last_query.selector.is_latest
        )

    async def retry_with_earliest(self) -> Optional[list[TopicMessage]]:
        """After a failed ``latest`` read, read from the oldest retained offset instead."""
        if not self.can_retry_with_earliest:
            raise ValueError("Retry with earliest is only offered after a failed 'latest' fetch")
        self.view.selector = EARLIEST
        return await self.fetch()

    # ---------- presentation ----------
    @property
    def visible_messages(self) -> list[TopicMessage]:
        return filter_messages(self.messages, self.view.search_term)

    def rows(self) -> list[Row]:
        return [
            render_row(m, self.view.format, self.expanded.is_expanded(m))
            for m in self.visible_messages
        ]

    def toggle_row(self, index: int) -> bool:
        """Expand or collapse the *index*-th visible row."""
        return self.expanded.toggle(self.visible_messages[index])

    # ---------- publish ----------
    @property
    def is_publishing(self) -> bool:
        return self.publish_state.pending

    @property
    def publish_error(self) -> Optional[ConsoleError]:
        return self.publish_state.error

    async def publish(self, request: PublishRequest) -> Optional[PublishAck]:
        """Publish *request*; returns the ack, or ``None`` with ``publish_error`` set.

        A successful publish re-fetches once when the view is on ``latest`` and
        no fetch is pending; any other window would not show the new record.
        """
        self.publish_state.begin()
        try:
            ack = await self._publisher.publish(request)
        except ConsoleError as exc:
            self.publish_state.fail(exc)
            return None
        except BaseException:
            self.publish_state.succeed()
            raise
        self.publish_state.succeed()
        self.last_ack = ack
        if self.view.selector.is_latest and not self.is_fetching:
            await self.fetch()
        return ack

    def close(self) -> None:
        """Drop all view data; late responses are discarded."""
        self._invalidate()
        self._replace([])
        self.topic = None
