"""
LibratoSink - Submits metric batches to the Librato metrics API.

One POST per batch:

    POST {api_url}/v1/metrics
    Authorization: Basic user:token
    {"gauges": [{"name": ..., "value": ..., "measure_time": ..., "source": ...}]}

Failures raise SinkError; nothing is retried here. One sink is shared by
every source worker, so submissions go through the session one at a time.
"""

import logging
import threading
from decimal import Decimal
from typing import Dict, List, Any, Optional, Sequence

import requests

from ..protocol.errors import SinkError
from ..protocol.sample import MetricSample

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://metrics-api.librato.com"
DEFAULT_TIMEOUT = 10.0


def to_payload(samples: Sequence[MetricSample]) -> Dict[str, List[Dict[str, Any]]]:
    """Build the JSON body for a batch."""
    gauges = []
    for sample in samples:
        value = sample.value
        if isinstance(value, Decimal):
            value = float(value)
        gauges.append({
            'name': sample.name,
            'value': value,
            'measure_time': sample.timestamp,
            'source': sample.source,
        })
    return {'gauges': gauges}


class LibratoSink:
    """
    HTTP client for the Librato metrics endpoint.

    Usage:
        sink = LibratoSink(user="ops@example.com", token="...")
        sink.submit(batch.samples)
    """

    def __init__(
        self,
        user: str,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.user = user
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.auth = (user, token)
        self._lock = threading.Lock()

    @property
    def metrics_url(self) -> str:
        return f"{self.api_url}/v1/metrics"

    def submit(self, samples: Sequence[MetricSample]) -> None:
        """
        Transmit one batch.

        Raises:
            ValueError: If the batch is empty
            SinkError: If the request fails or is rejected
        """
        if not samples:
            raise ValueError("Refusing to submit an empty batch")

        payload = to_payload(samples)

        try:
            with self._lock:
                resp = self._session.post(self.metrics_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise SinkError(f"Librato request failed: {e}") from e

        if resp.status_code >= 400:
            raise SinkError(
                f"Librato rejected batch of {len(samples)}: HTTP {resp.status_code} {resp.text[:200]}",
                status_code=resp.status_code,
            )

        logger.debug("Submitted %d samples to %s", len(samples), self.metrics_url)

    def close(self):
        """Close the underlying HTTP session."""
        with self._lock:
            self._session.close()
