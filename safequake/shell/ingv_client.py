"""INGV FDSN Event Client - Imperative Shell.

This module handles HTTP communication with the INGV FDSN event service.
All I/O is contained here; parsing and business logic are in the core module.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import requests

from safequake.core.geo import ITALY_BOUNDS, BoundingBox


logger = logging.getLogger(__name__)


# INGV FDSN Event Web Service base URL
INGV_API_BASE = "https://webservices.ingv.it/fdsnws/event/1/query"

# Default timeout for API requests (seconds)
DEFAULT_TIMEOUT = 30


@dataclass
class FDSNQueryParams:
    """Parameters for an FDSN event query.

    Attributes:
        bounds: Geographic bounding box (optional)
        min_magnitude: Minimum magnitude to fetch
        start_time: Fetch events after this time
        end_time: Fetch events before this time
        limit: Maximum number of results (None for the service default)
    """
    bounds: BoundingBox | None = None
    min_magnitude: float | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    limit: int | None = None


def start_of_year(now: datetime) -> datetime:
    """January 1st 00:00 UTC of the year of ``now``."""
    return datetime(now.year, 1, 1, tzinfo=timezone.utc)


class INGVClient:
    """Client for fetching seismic events from the INGV FDSN service.

    This is part of the imperative shell - it handles HTTP I/O.
    """

    def __init__(
        self,
        base_url: str = INGV_API_BASE,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize INGV client.

        Args:
            base_url: FDSN event query URL
            timeout: Request timeout in seconds
        """
        self.base_url = base_url
        self.timeout = timeout

    def _build_params(self, query: FDSNQueryParams) -> dict[str, str]:
        """Build query parameters for an FDSN request."""
        params: dict[str, str] = {
            "format": "geojson",
            "orderby": "time",
        }

        if query.bounds is not None:
            params["minlatitude"] = str(query.bounds.min_latitude)
            params["maxlatitude"] = str(query.bounds.max_latitude)
            params["minlongitude"] = str(query.bounds.min_longitude)
            params["maxlongitude"] = str(query.bounds.max_longitude)

        if query.min_magnitude is not None:
            params["minmagnitude"] = str(query.min_magnitude)

        if query.start_time is not None:
            params["starttime"] = query.start_time.strftime("%Y-%m-%dT%H:%M:%S")

        if query.end_time is not None:
            params["endtime"] = query.end_time.strftime("%Y-%m-%dT%H:%M:%S")

        if query.limit is not None:
            params["limit"] = str(query.limit)

        return params

    def fetch_events(self, query: FDSNQueryParams) -> dict[str, Any]:
        """Fetch seismic events from the FDSN service.

        This method performs HTTP I/O.

        Args:
            query: Query parameters

        Returns:
            Raw GeoJSON response

        Raises:
            requests.RequestException: If the request fails
            ValueError: If the body is not JSON
        """
        params = self._build_params(query)

        logger.info("Fetching seismic events from %s", self.base_url)
        logger.debug("FDSN query params: %s", params)

        response = requests.get(
            self.base_url,
            params=params,
            timeout=self.timeout,
        )
        response.raise_for_status()

        data = response.json()
        features = data.get("features") if isinstance(data, dict) else None

        logger.info(
            "Fetched %d seismic events",
            len(features) if isinstance(features, list) else 0,
        )

        return data

    def fetch_year_to_date(
        self,
        bounds: BoundingBox = ITALY_BOUNDS,
        min_magnitude: float = 0.0,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Fetch every event since January 1st of the current year.

        Args:
            bounds: Geographic bounds to query
            min_magnitude: Minimum magnitude
            now: Current time (defaults to the wall clock, UTC)

        Returns:
            Raw GeoJSON response
        """
        end = now or datetime.now(timezone.utc)

        query = FDSNQueryParams(
            bounds=bounds,
            min_magnitude=min_magnitude,
            start_time=start_of_year(end),
            end_time=end,
        )

        return self.fetch_events(query)
