"""Reconciliation of a run's results with the previously stored records."""

import logging
from typing import List, Optional

from webscraper.models import Page
from webscraper.sink import DatasetSink

logger = logging.getLogger(__name__)


class Reconciler:
    """Tracks the ids confirmed during a run and deletes the others.

    An id is confirmed when its page is emitted, or when the page (or, for
    anchor sub-pages, its parent) answered 304 Not Modified.
    """

    def __init__(self, existing_pages: Optional[List[Page]] = None):
        self.existing_pages = list(existing_pages or [])
        self.confirmed_ids: set[str] = set()

    def confirm(self, page_id: str) -> None:
        self.confirmed_ids.add(page_id)

    def confirm_unchanged(self, page: Page) -> List[str]:
        """Confirm an unchanged page and the anchor pages extracted from it.

        Returns:
            Confirmed ids
        """
        confirmed = [page.id]
        confirmed.extend(p.id for p in self.existing_pages if p.parent_id == page.id)
        self.confirmed_ids.update(confirmed)
        return confirmed

    def stale_pages(self) -> List[Page]:
        return [p for p in self.existing_pages if p.id not in self.confirmed_ids]

    async def apply(self, sink: DatasetSink, dataset_id: str) -> List[str]:
        """Delete previously stored records that were not confirmed.

        Returns:
            Deleted ids
        """
        deleted = []
        for page in self.stale_pages():
            logger.info(f"delete previously explored page that was not indexed this time {page.url}")
            await sink.delete_line(dataset_id, page.id)
            deleted.append(page.id)
        return deleted
