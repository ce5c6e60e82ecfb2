"""Remote document store adapters and the background write queue.

Writes never block the sampling path: callers hand records to
:class:`BackgroundWriter`, which dispatches them on a small thread pool and
only logs the outcome. A failed write is not retried (beyond the HTTP
adapter's transport retries) and the segment in flight may be lost.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Deque, Dict, Iterator, List, Mapping, Protocol, Tuple

import requests
from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import (
    HTTP_POOL_CONNECTIONS,
    HTTP_POOL_MAXSIZE,
    REQUEST_TIMEOUT,
    STORE_API_TOKEN,
    WRITER_FAILURE_HISTORY,
    WRITER_MAX_WORKERS,
)
from .errors import StoreReadError, TransientWriteError

_LOG = logging.getLogger(__name__)

Record = Dict[str, Any]


class RemoteStore(Protocol):
    def put_record(
        self, collection: str, document_id: str, fields: Mapping[str, Any]
    ) -> None: ...

    def get_record(self, collection: str, document_id: str) -> Record | None: ...

    def get_records(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
    ) -> Iterator[Record]: ...


class InMemoryDocumentStore:
    """Thread-safe dictionary-backed store."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._collections: Dict[str, Dict[str, Record]] = {}

    def put_record(
        self, collection: str, document_id: str, fields: Mapping[str, Any]
    ) -> None:
        with self._lock:
            self._collections.setdefault(collection, {})[document_id] = copy.deepcopy(
                dict(fields)
            )

    def get_record(self, collection: str, document_id: str) -> Record | None:
        with self._lock:
            record = self._collections.get(collection, {}).get(document_id)
            return copy.deepcopy(record) if record is not None else None

    def get_records(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
    ) -> Iterator[Record]:
        with self._lock:
            records = [
                copy.deepcopy(r) for r in self._collections.get(collection, {}).values()
            ]
        if filters:
            records = [
                r for r in records if all(r.get(k) == v for k, v in filters.items())
            ]
        if order_by:
            records.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by)))
        return iter(records)

    def document_ids(self, collection: str) -> List[str]:
        with self._lock:
            return list(self._collections.get(collection, {}))


def _build_retry() -> Retry:
    return Retry(
        total=3,
        backoff_factor=1.0,
        status_forcelist=[500, 502, 503, 504],
        allowed_methods=["GET", "PUT"],
    )


def create_store_session(token: str = STORE_API_TOKEN) -> Session:
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=HTTP_POOL_CONNECTIONS,
        pool_maxsize=HTTP_POOL_MAXSIZE,
        max_retries=_build_retry(),
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update(
        {
            "Accept-Encoding": "gzip, deflate",
            "Accept": "application/json",
        }
    )
    if token:
        session.headers["Authorization"] = f"Bearer {token}"
    return session


class HttpDocumentStore:
    """Document store reached over a JSON REST API.

    ``PUT {base_url}/{collection}/{document_id}`` writes a record,
    ``GET {base_url}/{collection}/{document_id}`` reads one back (404 means
    absent) and ``GET {base_url}/{collection}`` lists records, with filters
    passed as query parameters and ``order_by`` as a parameter of the same name.
    """

    def __init__(
        self,
        base_url: str,
        *,
        session: Session | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        self._base_url = base_url.rstrip("/")
        self._session = session or create_store_session()
        self._timeout = timeout

    def put_record(
        self, collection: str, document_id: str, fields: Mapping[str, Any]
    ) -> None:
        url = f"{self._base_url}/{collection}/{document_id}"
        try:
            response = self._session.put(url, json=dict(fields), timeout=self._timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise TransientWriteError(f"PUT {url} failed: {exc}") from exc

    def _get_json(self, url: str, params: Mapping[str, Any] | None = None) -> Any:
        _LOG.debug("GET %s params=%s", url, params)
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            raise StoreReadError(f"GET {url} failed: {exc}") from exc
        except ValueError as exc:
            raise StoreReadError(f"GET {url} returned invalid JSON: {exc}") from exc

    def get_record(self, collection: str, document_id: str) -> Record | None:
        url = f"{self._base_url}/{collection}/{document_id}"
        payload = self._get_json(url)
        if payload is None:
            return None
        if not isinstance(payload, dict):
            raise StoreReadError(f"GET {url} returned {type(payload).__name__}, not a record")
        return payload

    def get_records(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
    ) -> Iterator[Record]:
        url = f"{self._base_url}/{collection}"
        params: Dict[str, Any] = dict(filters or {})
        if order_by:
            params["order_by"] = order_by
        payload = self._get_json(url, params)
        if payload is None:
            return iter(())
        if isinstance(payload, Mapping):
            payload = payload.get("records", [])
        if not isinstance(payload, list):
            _LOG.warning("Unexpected payload listing %s: %r", url, type(payload))
            return iter(())
        return (record for record in payload if isinstance(record, dict))

    def close(self) -> None:
        self._session.close()


class BackgroundWriter:
    """Fire-and-forget dispatcher for store writes."""

    def __init__(
        self,
        store: RemoteStore,
        *,
        max_workers: int = WRITER_MAX_WORKERS,
        failure_history: int = WRITER_FAILURE_HISTORY,
    ):
        self._store = store
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers), thread_name_prefix="store-writer"
        )
        self._lock = threading.Lock()
        self._pending: set[Future[None]] = set()
        self._failures: Deque[Tuple[str, str, BaseException]] = deque(
            maxlen=max(1, failure_history)
        )
        self._closed = False

    @property
    def store(self) -> RemoteStore:
        return self._store

    @property
    def failures(self) -> List[Tuple[str, str, BaseException]]:
        """Most recent failed writes, oldest first; older ones roll off."""

        with self._lock:
            return list(self._failures)

    def submit(self, collection: str, document_id: str, fields: Mapping[str, Any]) -> None:
        """Queue a write and return immediately."""

        with self._lock:
            if self._closed:
                _LOG.warning(
                    "Writer closed; dropping %s/%s", collection, document_id
                )
                return
            future = self._executor.submit(self._write, collection, document_id, fields)
            self._pending.add(future)
        future.add_done_callback(self._discard)

    def _discard(self, future: Future[None]) -> None:
        with self._lock:
            self._pending.discard(future)

    def _write(self, collection: str, document_id: str, fields: Mapping[str, Any]) -> None:
        try:
            self._store.put_record(collection, document_id, fields)
        except Exception as exc:
            with self._lock:
                self._failures.append((collection, document_id, exc))
            _LOG.warning(
                "Failed writing document %s/%s: %s", collection, document_id, exc
            )
            return
        _LOG.info("Document %s/%s written", collection, document_id)

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for queued writes; True when none remain pending."""

        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _done, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self, wait_for_pending: bool = True) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=wait_for_pending)


__all__ = [
    "BackgroundWriter",
    "HttpDocumentStore",
    "InMemoryDocumentStore",
    "RemoteStore",
    "create_store_session",
]
