"""HTTP client helpers for talking to a running tree diagram backend."""

import os

import httpx


API_BASE = os.environ.get("TREE_DIAGRAM_API", "http://127.0.0.1:8765/api")


class ApiError(Exception):
    """The backend answered with an error status or could not be reached."""


def api_request(method: str, endpoint: str, **kwargs) -> dict:
    """Make a request to the tree diagram backend."""
    url = f"{API_BASE}{endpoint}"
    try:
        with httpx.Client(timeout=30.0) as client:
            if method == "GET":
                response = client.get(url, params=kwargs.get("params"))
            elif method == "POST":
                response = client.post(url, json=kwargs.get("json"), params=kwargs.get("params"))
            elif method == "PUT":
                response = client.put(url, json=kwargs.get("json"))
            else:
                raise ValueError(f"Unknown method: {method}")
    except httpx.TransportError as e:
        raise ApiError(f"Connection failed: {e}. Is the tree diagram backend running?") from e

    if response.status_code >= 400:
        try:
            error = response.json().get("detail", "Unknown error")
        except ValueError:
            error = response.text
        raise ApiError(f"API error ({response.status_code}): {error}")

    return response.json()
