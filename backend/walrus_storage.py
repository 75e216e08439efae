"""Media storage on Walrus through the HTTP publisher and aggregator."""
import logging
from typing import Optional

import requests

import config

logger = logging.getLogger(__name__)


class WalrusError(Exception):
    pass


class WalrusStorage:
    def __init__(
        self,
        publisher_url: str = config.WALRUS_PUBLISHER_URL,
        aggregator_url: str = config.WALRUS_AGGREGATOR_URL,
        epochs: int = config.WALRUS_EPOCHS,
        timeout: float = 60,
        session: Optional[requests.Session] = None,
    ):
        self.publisher_url = publisher_url.rstrip('/')
        self.aggregator_url = aggregator_url.rstrip('/')
        self.epochs = epochs
        self.timeout = timeout
        self.session = session or requests.Session()

    def blob_url(self, blob_id: str) -> str:
        return f"{self.aggregator_url}/v1/blobs/{blob_id}"

    def upload_bytes(self, data: bytes, epochs: Optional[int] = None, deletable: bool = True) -> str:
        """Store `data` and return its blob id."""
        if not data:
            raise WalrusError("Refusing to upload an empty blob")

        params = {"epochs": epochs or self.epochs}
        if deletable:
            params["deletable"] = "true"

        logger.info("Uploading %d bytes to Walrus", len(data))
        try:
            response = self.session.put(
                f"{self.publisher_url}/v1/blobs",
                params=params,
                data=data,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise WalrusError(f"Upload to Walrus failed: {e}")
        if response.status_code != 200:
            raise WalrusError(f"Walrus publisher returned {response.status_code}: {response.text}")

        body = response.json()
        if "newlyCreated" in body:
            blob_id = body["newlyCreated"]["blobObject"]["blobId"]
        elif "alreadyCertified" in body:
            blob_id = body["alreadyCertified"]["blobId"]
        else:
            raise WalrusError(f"Unexpected publisher response: {body}")

        logger.info("Upload successful, blob ID: %s", blob_id)
        return blob_id

    def upload_from_url(self, url: str, **kwargs) -> str:
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise WalrusError(f"Failed to fetch {url}: {e}")
        if response.status_code != 200:
            raise WalrusError(f"Failed to fetch {url}: HTTP {response.status_code}")
        return self.upload_bytes(response.content, **kwargs)

    def get_blob(self, blob_id: str) -> bytes:
        try:
            response = self.session.get(self.blob_url(blob_id), timeout=self.timeout)
        except requests.RequestException as e:
            raise WalrusError(f"Failed to read blob {blob_id}: {e}")
        if response.status_code == 404:
            raise WalrusError(f"Blob not found: {blob_id}")
        if response.status_code != 200:
            raise WalrusError(f"Walrus aggregator returned {response.status_code}")
        return response.content
