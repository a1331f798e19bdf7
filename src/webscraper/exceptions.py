"""Exceptions raised by the web scraper."""


class ScraperError(Exception):
    """Base class for errors that abort a scraping run."""


class ConfigError(ScraperError):
    """Raised when the processing configuration cannot drive a run."""


class DatasetError(ScraperError):
    """Raised when the target dataset cannot be used."""

    def __init__(self, message: str, dataset_id: str | None = None):
        self.message = message
        self.dataset_id = dataset_id
        super().__init__(message)


class DatasetNotFoundError(DatasetError):
    """Raised in update mode when the configured dataset is missing."""

    def __init__(self, dataset_id: str | None):
        super().__init__(f'the dataset does not exist, id="{dataset_id}"', dataset_id)


class DatasetCreationError(DatasetError):
    """Raised when the dataset could not be created or never finalized."""
