"""
HTTP Utilities

Shared utilities for httpx client operations and error handling. Registry
lookups make a single attempt and report failure as absence of data.
"""

import logging
import time
from typing import Any, Optional

import httpx

from dephealth.core.metrics import (
    external_api_duration_seconds,
    external_api_errors_total,
    external_api_requests_total,
)

logger = logging.getLogger(__name__)


async def fetch_json(
    url: str,
    headers: Optional[dict] = None,
    timeout: float = 5.0,
    service_name: str = "External API",
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[Any]:
    """
    Fetch JSON from a URL with error handling.

    Args:
        url: The URL to fetch
        headers: Optional request headers
        timeout: Request timeout in seconds
        service_name: Name for logging
        transport: Optional transport override

    Returns:
        Parsed JSON, or None if the request failed
    """
    start_time = time.time()
    external_api_requests_total.labels(service=service_name).inc()
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(url, headers=headers, follow_redirects=True)
            response.raise_for_status()
            duration = time.time() - start_time
            external_api_duration_seconds.labels(service=service_name).observe(duration)
            return response.json()
    except httpx.TimeoutException:
        external_api_errors_total.labels(service=service_name).inc()
        logger.debug(f"Timeout fetching {url}")
        return None
    except httpx.ConnectError:
        external_api_errors_total.labels(service=service_name).inc()
        logger.debug(f"Connection error fetching {url}")
        return None
    except httpx.HTTPStatusError as e:
        external_api_errors_total.labels(service=service_name).inc()
        if e.response.status_code != 404:  # unknown packages are expected
            logger.debug(f"HTTP {e.response.status_code} fetching {url}")
        return None
    except (httpx.HTTPError, ValueError) as e:
        external_api_errors_total.labels(service=service_name).inc()
        logger.warning(f"Error fetching {url}: {e}")
        return None


async def post_json(
    url: str,
    data: Any,
    headers: Optional[dict] = None,
    timeout: float = 30.0,
    service_name: str = "External API",
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[Any]:
    """
    POST JSON to a URL with error handling.

    Args:
        url: The URL to post to
        data: JSON data to send
        headers: Optional request headers
        timeout: Request timeout in seconds
        service_name: Name for logging
        transport: Optional transport override

    Returns:
        Parsed JSON response, or None if the request failed
    """
    start_time = time.time()
    external_api_requests_total.labels(service=service_name).inc()
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.post(url, json=data, headers=headers)
            response.raise_for_status()
            duration = time.time() - start_time
            external_api_duration_seconds.labels(service=service_name).observe(duration)
            return response.json()
    except httpx.TimeoutException:
        external_api_errors_total.labels(service=service_name).inc()
        logger.warning(f"Timeout posting to {service_name}")
        return None
    except httpx.ConnectError:
        external_api_errors_total.labels(service=service_name).inc()
        logger.warning(f"Connection error posting to {service_name}")
        return None
    except httpx.HTTPStatusError as e:
        external_api_errors_total.labels(service=service_name).inc()
        logger.warning(f"HTTP {e.response.status_code} posting to {service_name}")
        return None
    except (httpx.HTTPError, ValueError) as e:
        external_api_errors_total.labels(service=service_name).inc()
        logger.error(f"Error posting to {service_name}: {e}")
        return None
