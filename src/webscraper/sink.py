# src/webscraper/sink.py
"""Dataset sink abstraction supporting a remote data-fair REST dataset and a
local in-memory store."""

import asyncio
import itertools
import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

import httpx

from webscraper.config import settings
from webscraper.constants import (
    DATASET_FINALIZE_MAX_ATTEMPTS,
    DATASET_FINALIZE_POLL_SECONDS,
    DEFAULT_CONTENT_FILENAME,
    DEFAULT_CONTENT_TYPE,
)
from webscraper.exceptions import DatasetCreationError, DatasetError

logger = logging.getLogger(__name__)


class DatasetSink(ABC):
    """Abstract base class defining the dataset operations the crawl needs."""

    @abstractmethod
    async def create_dataset(
        self,
        dataset_id: Optional[str],
        title: Optional[str],
        schema: List[Dict[str, Any]],
        extras: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Create a REST dataset.

        Returns:
            Dataset metadata, including the assigned 'id' and 'title'.

        Raises:
            DatasetCreationError: If the dataset could not be created.
        """
        pass

    @abstractmethod
    async def get_dataset(self, dataset_id: str) -> Optional[Dict[str, Any]]:
        """Dataset metadata, or None if the dataset does not exist."""
        pass

    @abstractmethod
    async def wait_finalized(self, dataset_id: str) -> Dict[str, Any]:
        """Wait until a freshly created dataset accepts lines."""
        pass

    @abstractmethod
    async def list_lines(self, dataset_id: str, select: str, size: int) -> List[Dict[str, Any]]:
        """List stored records with the selected fields (comma separated)."""
        pass

    @abstractmethod
    async def upsert_line(
        self,
        dataset_id: str,
        record: Dict[str, Any],
        content: Union[str, bytes],
        content_type: str = DEFAULT_CONTENT_TYPE,
        filename: str = DEFAULT_CONTENT_FILENAME,
    ) -> None:
        """Create or replace the record identified by record['_id'] together
        with its attached content, in a single call."""
        pass

    @abstractmethod
    async def delete_line(self, dataset_id: str, line_id: str) -> None:
        """Delete a stored record."""
        pass

    async def close(self) -> None:
        """Release resources held by the sink."""

    async def __aenter__(self) -> "DatasetSink":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


class DataFairSink(DatasetSink):
    """Sink writing to a data-fair instance through its REST API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the data-fair client.

        Args:
            base_url: data-fair root URL. Defaults to settings.DATA_FAIR_URL.
            api_key: API key sent as x-apiKey. Defaults to settings.DATA_FAIR_API_KEY.
            client: Pre-configured client (tests); built from base_url otherwise.
            timeout: Request timeout in seconds. Defaults to settings.REQUEST_TIMEOUT.
        """
        base_url = base_url or settings.DATA_FAIR_URL
        if not base_url.endswith("/"):
            base_url += "/"
        api_key = api_key or settings.DATA_FAIR_API_KEY
        headers = {"x-apiKey": api_key} if api_key else {}
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout or settings.REQUEST_TIMEOUT,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def create_dataset(self, dataset_id, title, schema, extras=None):
        body: Dict[str, Any] = {"title": title, "isRest": True, "schema": schema}
        if dataset_id:
            body["id"] = dataset_id
        if extras:
            body["extras"] = extras
        try:
            response = await self.client.post("api/v1/datasets", json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DatasetCreationError(
                f"failed to create dataset \"{title}\" - {e.response.status_code} {e.response.text}",
                dataset_id,
            ) from e
        except httpx.HTTPError as e:
            raise DatasetCreationError(f"failed to create dataset \"{title}\" - {e}", dataset_id) from e
        return response.json()

    async def get_dataset(self, dataset_id):
        try:
            response = await self.client.get(f"api/v1/datasets/{dataset_id}")
        except httpx.HTTPError as e:
            raise DatasetError(f"failed to read dataset \"{dataset_id}\" - {e}", dataset_id) from e
        if response.status_code == 404:
            return None
        if response.is_error:
            raise DatasetError(
                f"failed to read dataset \"{dataset_id}\" - {response.status_code}", dataset_id
            )
        return response.json()

    async def wait_finalized(self, dataset_id):
        for _ in range(DATASET_FINALIZE_MAX_ATTEMPTS):
            dataset = await self.get_dataset(dataset_id)
            if dataset and dataset.get("status") == "finalized":
                return dataset
            if dataset and dataset.get("status") == "error":
                raise DatasetCreationError(f"dataset \"{dataset_id}\" is in error status", dataset_id)
            await asyncio.sleep(DATASET_FINALIZE_POLL_SECONDS)
        raise DatasetCreationError(f"dataset \"{dataset_id}\" was not finalized in time", dataset_id)

    async def list_lines(self, dataset_id, select, size):
        response = await self.client.get(
            f"api/v1/datasets/{dataset_id}/lines",
            params={"select": select, "size": size},
        )
        response.raise_for_status()
        return response.json().get("results", [])

    async def upsert_line(
        self,
        dataset_id,
        record,
        content,
        content_type=DEFAULT_CONTENT_TYPE,
        filename=DEFAULT_CONTENT_FILENAME,
    ):
        data = content.encode("utf-8") if isinstance(content, str) else content
        response = await self.client.put(
            f"api/v1/datasets/{dataset_id}/lines/{record['_id']}",
            files={"attachment": (filename, data, content_type)},
            data={"_body": json.dumps(record)},
        )
        response.raise_for_status()

    async def delete_line(self, dataset_id, line_id):
        response = await self.client.delete(f"api/v1/datasets/{dataset_id}/lines/{line_id}")
        response.raise_for_status()


class MemorySink(DatasetSink):
    """Dict-backed sink, used for local runs and tests.

    Stored lines expose the same fields a data-fair listing would:
    the structured record plus '_file.content', '_file.content_type' and
    '_updatedAt' (a monotonic counter).
    """

    def __init__(self):
        self.datasets: Dict[str, Dict[str, Any]] = {}
        self._clock = itertools.count(1)

    def lines(self, dataset_id: str) -> Dict[str, Dict[str, Any]]:
        return self.datasets[dataset_id]["lines"]

    def _require(self, dataset_id: str) -> Dict[str, Any]:
        if dataset_id not in self.datasets:
            raise DatasetError(f"failed to read dataset \"{dataset_id}\" - 404", dataset_id)
        return self.datasets[dataset_id]

    async def create_dataset(self, dataset_id, title, schema, extras=None):
        dataset_id = dataset_id or re.sub(r"[^a-z0-9]+", "-", (title or "dataset").lower()).strip("-")
        if dataset_id in self.datasets:
            raise DatasetCreationError(f"dataset \"{dataset_id}\" already exists", dataset_id)
        self.datasets[dataset_id] = {
            "id": dataset_id,
            "title": title,
            "schema": schema,
            "extras": extras or {},
            "status": "finalized",
            "lines": {},
        }
        return self._metadata(dataset_id)

    def _metadata(self, dataset_id: str) -> Dict[str, Any]:
        dataset = self.datasets[dataset_id]
        return {k: v for k, v in dataset.items() if k != "lines"}

    async def get_dataset(self, dataset_id):
        if dataset_id not in self.datasets:
            return None
        return self._metadata(dataset_id)

    async def wait_finalized(self, dataset_id):
        self._require(dataset_id)
        return self._metadata(dataset_id)

    async def list_lines(self, dataset_id, select, size):
        fields = [f.strip() for f in select.split(",")]
        lines = list(self._require(dataset_id)["lines"].values())[:size]
        return [{f: line[f] for f in fields if f in line} for line in lines]

    async def upsert_line(
        self,
        dataset_id,
        record,
        content,
        content_type=DEFAULT_CONTENT_TYPE,
        filename=DEFAULT_CONTENT_FILENAME,
    ):
        text = content.decode("utf-8") if isinstance(content, bytes) else content
        line = dict(record)
        line["_file.content"] = text
        line["_file.content_type"] = content_type
        line["_file.name"] = filename
        line["_updatedAt"] = next(self._clock)
        self._require(dataset_id)["lines"][record["_id"]] = line

    async def delete_line(self, dataset_id, line_id):
        self._require(dataset_id)["lines"].pop(line_id, None)


def get_sink(backend: Optional[str] = None, **kwargs) -> DatasetSink:
    """Factory function to create the appropriate sink.

    Args:
        backend: Sink backend ('datafair' or 'local'). Defaults to settings.SINK_BACKEND.
        **kwargs: Additional arguments passed to the sink constructor.

    Returns:
        A DatasetSink instance.

    Raises:
        ValueError: If an unknown backend is specified.
    """
    backend = backend or settings.SINK_BACKEND

    if backend == "datafair":
        logger.info("Using data-fair dataset backend")
        return DataFairSink(**kwargs)
    elif backend == "local":
        logger.info("Using local in-memory dataset backend")
        return MemorySink(**kwargs)
    else:
        raise ValueError(
            f"Unknown sink backend: '{backend}'. "
            "Supported backends: 'datafair', 'local'"
        )
