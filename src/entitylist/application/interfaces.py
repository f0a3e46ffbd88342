from abc import ABC, abstractmethod
from typing import Any, Dict, List, Union


class IRecordSource(ABC):
    """Remote listing collaborator."""

    @abstractmethod
    async def fetch_page(self, params: Dict[str, Any]) -> Union[List[Any], Dict[str, Any]]:
        """
        Return either a bare record list or ``{"items": [...]}``.
        Failures are raised as ``FetchError`` carrying an opaque error code.
        """
        pass


class IRecordRemover(ABC):
    """Remote deletion collaborator."""

    @abstractmethod
    async def delete_one(self, record_id: str) -> Any:
        """Delete one record; a falsy result (``False``/``None``) signals failure."""
        pass
