import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    pass


class HttpAnalysisService:
    """Client for the stateless analysis endpoint that structures a transcript."""

    def __init__(
        self,
        url: str,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def analyze(self, transcript: str, task_type: str, category: str) -> dict[str, Any]:
        if not transcript.strip():
            raise AnalysisError("Transcript is empty")

        payload = {"prompt": transcript, "type": task_type, "category": category}
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
        ) as client:
            try:
                response = await client.post(self._url, json=payload)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                logger.error("Analysis HTTP error: %s", exc.response.status_code)
                raise AnalysisError(f"Analysis service returned {exc.response.status_code}") from exc
            except httpx.HTTPError as exc:
                logger.error("Analysis request failed: %s", exc)
                raise AnalysisError(f"Analysis request failed: {exc}") from exc

        try:
            result = response.json()
        except ValueError as exc:
            raise AnalysisError("Analysis service returned invalid JSON") from exc
        if not isinstance(result, dict):
            raise AnalysisError("Analysis service returned a non-object response")
        logger.info("Analysis complete (type=%s, %d fields)", task_type, len(result))
        return result
