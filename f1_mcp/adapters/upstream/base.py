from abc import ABC, abstractmethod
from typing import Any, Mapping


class AbstractUpstreamClient(ABC):
	"""Interface for clients that fetch JSON from an upstream REST API."""

	@abstractmethod
	async def fetch_json(
		self,
		url: str,
		params: Mapping[str, Any] | None = None,
	) -> Any:
		"""Perform a GET request and return the parsed JSON body.

		Args:
			url: Absolute URL of the upstream resource.
			params: Optional query parameters (None values are dropped).

		Returns:
			Any: Parsed JSON payload.

		Raises:
			UpstreamAppError: On transport failure, timeout, non-2xx status or
				an unparseable body.
		"""
		...

	async def close(self) -> None:
		"""Release network resources. Default implementation does nothing."""
		return None
