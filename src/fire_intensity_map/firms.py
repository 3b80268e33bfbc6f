"""
NASA FIRMS area API client.

URL construction and CSV parsing are kept separate from the HTTP call so they
can be tested without the network.
"""

from datetime import date
from io import StringIO

import pandas as pd
import requests

from .errors import FireDataError


REQUIRED_COLUMNS = ("latitude", "longitude", "acq_date", "bright_ti5")
KELVIN_OFFSET = 273.15

# Plain-text bodies FIRMS returns instead of CSV
_ERROR_BODIES = ("no data", "invalid map_key", "invalid api call", "exceeding allowed transaction limit")


def build_fire_url(base_url, map_key, source, bbox, day_range, date_value):
    """
    Build the FIRMS area request URL.

    Format: {base_url}/{map_key}/{source}/{xmin,ymin,xmax,ymax}/{day_range}/{date}
    """
    if isinstance(date_value, date):
        date_value = date_value.strftime("%Y-%m-%d")
    return "/".join([
        base_url.rstrip("/"),
        map_key,
        source,
        bbox.as_area(),
        str(day_range),
        str(date_value),
    ])


def parse_fire_csv(text):
    """
    Parse a FIRMS CSV body into typed fire records.

    Args:
        text (str): Response body

    Returns:
        pd.DataFrame: latitude, longitude, acq_date (datetime64), bright_ti5 (Kelvin)

    Raises:
        FireDataError: On error bodies, malformed CSV, missing columns or no rows
    """
    body = text.strip()
    if not body:
        raise FireDataError("FIRMS returned an empty response")

    if body.lower().startswith(_ERROR_BODIES):
        raise FireDataError(f"FIRMS returned an error: {body.splitlines()[0]}")

    try:
        df = pd.read_csv(StringIO(body))
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise FireDataError(f"Malformed FIRMS response: {e}") from e

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise FireDataError(f"FIRMS response is missing columns: {', '.join(missing)}")

    if df.empty:
        raise FireDataError("FIRMS returned no fire detections for this area and date window")

    df = df[list(REQUIRED_COLUMNS)].copy()
    try:
        for col in ("latitude", "longitude", "bright_ti5"):
            df[col] = pd.to_numeric(df[col]).astype(float)
        df['acq_date'] = pd.to_datetime(df['acq_date']).dt.normalize()
    except (ValueError, TypeError) as e:
        raise FireDataError(f"Malformed FIRMS response: {e}") from e

    return df.reset_index(drop=True)


def fetch_fire_data(base_url, map_key, source, bbox, day_range, date_value, timeout=60):
    """
    Fetch fire detections for a bounding box and date window.

    A single request; no retries.

    Raises:
        FireDataError: On network/HTTP failure or an unusable body
    """
    url = build_fire_url(base_url, map_key, source, bbox, day_range, date_value)

    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        message = str(e)
        if map_key:
            # Keep the key out of the message
            message = message.replace(map_key, "***")
        raise FireDataError(f"FIRMS request failed: {message}") from e

    return parse_fire_csv(response.text)


def kelvin_to_celsius(kelvin):
    """Convert brightness temperature from Kelvin to degrees Celsius."""
    return kelvin - KELVIN_OFFSET
